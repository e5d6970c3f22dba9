# setup.py
# src layout with a console-script entry point for the orchestrator

from setuptools import setup, find_packages

setup(
    name="detector-pipeline",
    version="1.0.0",
    description="Orchestrates dataset partitioning, HoG feature extraction and image classification",
    python_requires=">=3.8",

    # --- Source code lives under src/ ---
    package_dir={"": "src"},
    packages=find_packages(where="src"),

    install_requires=[
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },

    # This block creates the command-line tool
    entry_points={
        'console_scripts': [
            'detector = detector_pipeline.__main__:main',
        ],
    },
)
