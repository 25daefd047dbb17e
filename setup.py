from setuptools import find_packages, setup

setup(
    name="modelcache",
    version="1.0.0",
    packages=find_packages(include=["modelcache", "modelcache.*"]),
    install_requires=[line for line in open("requirements-core.txt").read().splitlines() if line],
    extras_require={
        "test": [line for line in open("requirements-test.txt").read().splitlines() if line],
    },
    python_requires=">=3.9",
)
