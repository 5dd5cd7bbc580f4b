#!/usr/bin/env python3

from setuptools import setup
import os

directory = os.path.dirname(os.path.realpath(__file__))


if __name__ == "__main__":
    setup(
        name="mapbuffer",
        packages=["mapbuffer"],
        python_requires='>3.10.0',
        version="0.1.0",
        license="MIT",
        description="Region-batched submap buffer for chunked world maps",
        author="mirmik",
        author_email="mirmikns@yandex.ru",
        long_description=open(os.path.join(
            directory, "README.md"), "r", encoding="utf8").read(),
        long_description_content_type="text/markdown",
        keywords=["voxel", "map", "storage", "cache"],
        classifiers=[],
        install_requires=[
            "numpy",
        ],
        extras_require={
            "test": [
                "pytest",
            ],
        },
        entry_points={
            "console_scripts": [
                "mapbuffer=mapbuffer.__main__:main",
            ],
        },
        zip_safe=False,
    )
