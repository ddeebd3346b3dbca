import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="binlayout",
    version="0.1.0",
    author="Gianluca Pacchiella",
    author_email="gp@ktln2.org",
    description="Declarative binary formats for humans",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/gipi/binlayout",
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.7',
    install_requires=[],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v2 (GPLv2)",
        "Operating System :: OS Independent",
    ],
)
