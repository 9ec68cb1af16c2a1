from setuptools import find_packages, setup


setup(
    name="sheet-ledger",
    version="0.1.0",
    description="Reconcile loosely-structured order, settlement and catalog sheets into fulfilment and payout views",
    packages=find_packages(include=["sheet_ledger", "sheet_ledger.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "sheet-ledger=sheet_ledger.cli:main",
        ]
    },
)
