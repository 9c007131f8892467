from setuptools import setup, find_packages

setup(
    name="resilience-simulator",
    version="0.1.0",
    description="Virtual-time simulation harness for caches, circuit breakers, retries and timeouts",
    author="adamfilli",
    packages=find_packages(include=["resiliencesim", "resiliencesim.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
