from setuptools import setup, find_packages

setup(
    name="avenuepd",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "avenuepd": ["data/*.yaml"],
    },
    install_requires=[
        "pyyaml",
        "pydantic",
        "pymongo",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "avenuepd=avenuepd.cli:main",
        ],
    },
)
