#!/usr/bin/env python
"""
Setup script for the coastsed package.
"""

from setuptools import setup, find_packages

setup(
    name="coastsed",
    version="0.1.0",
    description="Supply-limited routing of unconsolidated sediment between coast polygons",
    author="coastsed Team",
    author_email="example@example.com",
    url="https://github.com/your-username/coastsed",
    packages=find_packages(),
    install_requires=[
        "numpy",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
    ],
    python_requires=">=3.7",
)
