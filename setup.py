from setuptools import setup


setup(
    name="iislogs-to-excel",
    version="1.2.0",
    description="Convert IIS W3C extended log files into Excel workbooks with optional pivot summaries",
    packages=["iislogs_to_excel"],
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "iislogs-to-excel=iislogs_to_excel.cli:main",
        ]
    },
)
