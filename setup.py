# setup.py
from setuptools import setup, find_packages

setup(
    name="recordpack",
    version="0.1.0",
    description="Distributed record processing over chunked RocksDB record stores",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "rocksdict",
        "setproctitle",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
