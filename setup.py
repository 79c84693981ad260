# setup.py
from setuptools import setup, find_packages

setup(
    name="pocket-ledger",
    version="0.1.0",
    description="A personal ledger for categorized income and expenses with spending statistics",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "pyyaml>=5.3",
        "python-dotenv>=0.19",
        "anyio>=3.6",
        "mcp>=1.0,<2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pocket-ledger=pocket_ledger.cli:main",
            "pocket-ledger-mcp=pocket_ledger.mcp_server:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
