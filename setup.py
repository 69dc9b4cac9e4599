"""
Setup script for lbmwind package.
"""

from setuptools import setup, find_packages

setup(
    name="lbmwind",
    version="0.1.0",
    description="Streaming stage with driving-force boundaries for a 3D Lattice Boltzmann wind solver",
    author="Andrey",
    packages=find_packages(include=["lbmwind", "lbmwind.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "numba>=0.56",
    ],
    extras_require={
        "dev": ["pytest>=7.0", "black", "flake8"],
    },
)
