# setup.py
from setuptools import setup, find_packages

setup(
    name="sitefreeze",
    version="0.1.0",
    description="Turn a WSGI application into a static site by crawling it",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"sitefreeze.report": ["templates/*.j2"]},
    install_requires=[
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "Jinja2>=3.1",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": ["sitefreeze = sitefreeze.cli:cli"],
    },
    python_requires=">=3.11",
)
