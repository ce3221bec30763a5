#!/usr/bin/env python3
"""
Setup script for flexilemma
"""

from pathlib import Path

from setuptools import find_packages, setup

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = ""
if readme_file.exists():
    long_description = readme_file.read_text(encoding='utf-8')

# Read version from flexilemma/__init__.py
version = "1.0.0"
init_file = Path(__file__).parent / "flexilemma" / "__init__.py"
if init_file.exists():
    for line in init_file.read_text(encoding='utf-8').split('\n'):
        if line.startswith('__version__'):
            version = line.split('=')[1].strip().strip('"').strip("'")
            break

BASE_REQUIREMENTS = [
    "langcodes>=3.3.0",
    "tabulate>=0.9.0",
    "numpy>=1.21.0",
    "scikit-learn>=1.1.0,<1.9",
    "joblib>=1.1.0",
    "python-crfsuite>=0.9.7",
]

EXTRAS = {
    "test": ["pytest>=7.0.0"],
}
EXTRAS["dev"] = sorted(
    set(
        EXTRAS["test"]
        + [
            "black>=22.0.0",
            "flake8>=4.0.0",
        ]
    )
)

setup(
    name="flexilemma",
    version=version,
    description="Statistical POS tagger and edit-script lemmatizer",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=BASE_REQUIREMENTS,
    extras_require=EXTRAS,
    entry_points={
        "console_scripts": [
            "flexilemma=flexilemma.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Text Processing :: Linguistic",
    ],
    keywords="nlp, lemmatization, pos-tagging, edit-script, beam-search, crf",
    zip_safe=False,
)
