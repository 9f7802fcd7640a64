# type: ignore
"""Fairly minimal certsteward setup.py for setuptools."""
import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="certsteward",
    version="0.1.0",
    description="Tracks, reports and renews ACME certificates for a fleet of hosted apps.",
    license="BSD License",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["certsteward"],
    entry_points={"console_scripts": ["certsteward = certsteward.certsteward:main"]},
    classifiers=[
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=["PyYAML", "cryptography>=42", "pid", "pydantic>=2", "pydantic-settings"],
    extras_require={"test": ["pytest"]},
    include_package_data=True,
)
