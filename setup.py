from setuptools import setup, find_namespace_packages
from pathlib import Path

setup(
    name="nnet_train",
    version=Path("./nnet_train/VERSION").read_text().strip(),
    packages=find_namespace_packages(include=["nnet_train", "nnet_train.*"]),
    package_data={"nnet_train": ["VERSION"]},
    python_requires=">=3.8",
    install_requires=[
        "torch",
        "numpy",
        "easydict",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["nnet_train=nnet_train.cli:main"],
    },
)
