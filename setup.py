from setuptools import setup


setup(
    name="nominales-txt",
    version="0.1.0",
    description="Aggregate nominales per CUIT from holder workbooks into settlement TXT files",
    packages=["nominales_txt"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "test": ["pytest"],
        "all": ["xlrd"],
    },
    entry_points={
        "console_scripts": [
            "nominales-txt=nominales_txt.cli:main",
        ]
    },
)
