from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith("#")]

setup(
    name="affilimart",
    version="0.1.0",
    description="Affiliate services marketplace backend",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["server"],
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest",
            "responses",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "affilimart=affilimart.cli_module.cli:main",
            "affilimart-store=server:cli",
        ],
    },
)
