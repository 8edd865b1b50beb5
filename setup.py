"""Setup configuration for Smart Invoice Splitter."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="smart-invoice-splitter",
    version="0.1.0",
    description="Invoice boundary detection for multi-page expense documents",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.6.4",
        "pydantic-settings>=2.2.1",
        "python-dotenv>=1.0.1",
        "httpx>=0.27.0",
        "ollama>=0.4.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.1.1",
            "pytest-cov>=5.0.0",
            "black>=24.3.0",
            "ruff>=0.3.4",
            "mypy>=1.9.0",
        ],
    },
)
