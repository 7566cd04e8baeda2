"""
Installs SciPathPy
"""

import re

from setuptools import find_packages, setup


# Get package information
def get_package_info():
    """
    Gets version information for the installation.
    """
    # Set up variables
    package_version = None

    # Open the file containing version info
    with open("scipathpy/__init__.py", "r", encoding="utf-8") as file:
        for line in file:
            # Check version
            if match_obj := re.match(r"__version__.+([0-9]+\.[0-9]+\.[0-9]+)", line):
                package_version = match_obj.group(1)

    # Checks on variables
    if package_version is None:
        raise IOError("Could not find information on version.")

    return package_version


# Run setup
setup(
    name="SciPathPy",
    version=get_package_info(),
    description="Marginal likelihood and Bayes factor estimation by path sampling",
    packages=find_packages(include=["scipathpy", "scipathpy.*"]),
    python_requires=">=3.10",
    install_requires=[
        "arviz>=0.17,<1",
        "numpy",
        "pandas",
        "pydantic>=2",
        "scipy",
        "tqdm",
        "typeguard>=4",
    ],
    extras_require={"test": ["pytest", "hypothesis"]},
)
