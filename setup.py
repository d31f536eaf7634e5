from setuptools import setup, find_namespace_packages
import os
import re

# Function to extract version from __init__.py
def get_version(package):
    """Return package version as listed in `__version__` in `init.py`."""
    # Assumes __init__.py is at the root relative to setup.py
    init_py_path = os.path.join(os.path.dirname(__file__), package, '__init__.py')
    if not os.path.exists(init_py_path):
         raise RuntimeError(f"Unable to find __init__.py in {package}.")

    with open(init_py_path, 'r', encoding='utf-8') as f:
         init_py = f.read()

    match = re.search("__version__ = ['\"]([^'\"]+)['\"]", init_py)
    if match:
        return match.group(1)
    else:
         raise RuntimeError(f"Unable to find __version__ string in {init_py_path}")

version = get_version('.')

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith("#")]

setup(
    name="playlist-purge",
    version=version,
    description="List and batch-delete YouTube playlists through the Data API or the internal web API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    # Flat layout: top-level modules plus the api/ and services/ directories
    py_modules=["config", "exceptions", "logging_config", "main", "middleware", "models", "server", "utils"],
    packages=find_namespace_packages(include=["api", "services"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "playlist-purge=server:main",
        ],
    },
)
