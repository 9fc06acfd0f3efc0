import re

import setuptools

with open("pyfleetapi/__init__.py", "r") as fh:
    version_tuple = re.search(r"version_tuple = \((\d+), (\d+), (\d+)\)", fh.read()).groups()
    __version__ = ".".join(version_tuple)

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="pyfleetapi",
    version=__version__,
    author="pyFleetAPI Developers",
    description="Python module to monitor and control a Tesla Powerwall through the Tesla FleetAPI",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(),
    python_requires='>=3.9',
    install_requires=[
        'requests',
        'pydantic>=2.0',
        'pydantic-settings>=2.0',
        'python-dotenv',
        'python-dateutil',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['pyfleetapi=pyfleetapi.__main__:main'],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
