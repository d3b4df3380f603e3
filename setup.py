from setuptools import setup, find_packages

setup(
    name="collab-intel",
    version="0.1.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "ci=collab_intel.cli:main",
        ],
    },
    description="Load CollaborativeIntelligence agents into assistant sessions.",
)
