#!/usr/bin/env python3
import os
from typing import List

from setuptools import find_packages, setup

DESCRIPTION = "Unidirectional payment channels with off-chain signed authorizations."


def read_requirements(path: str) -> List[str]:
    assert os.path.isfile(path)
    ret = []
    with open(path, encoding="utf-8") as requirements:
        for line in requirements.readlines():
            line = line.strip()
            if line and line[0] in ("#", "-"):
                continue
            ret.append(line)

    return ret


with open("README.md", encoding="utf-8") as readme_file:
    README = readme_file.read()


setup(
    name="payment-channel",
    version="1.0.0",
    license="MIT",
    description=DESCRIPTION,
    long_description=README,
    long_description_content_type="text/markdown",
    packages=find_packages("src"),
    package_dir={"": "src"},
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        # complete classifier list: http://pypi.python.org/pypi?%3Aaction=list_classifiers
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Programming Language :: Python :: 3",
    ],
    keywords=["payment channel", "ethereum", "blockchain"],
    install_requires=read_requirements("requirements.txt"),
    extras_require={"dev": read_requirements("requirements-dev.txt")},
    entry_points={"console_scripts": ["payment-channel=payment_channel.cli:main"]},
)
