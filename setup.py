from setuptools import setup, find_packages

setup(
    name="coopengine",
    version="1.0.0",
    packages=find_packages(include=["coopengine", "coopengine.*"]),
    install_requires=[
        "openai>=1.0.0",
        "anthropic>=0.30.0",
        "google-genai>=1.0.0",
        "flask>=3.0.0",
        "flask-cors>=4.0.0",
        "flask-limiter>=3.5.0",
        "python-dotenv>=1.0.0",
        "click>=8.1.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "hypothesis>=6.90.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "coopengine=coopengine.cli.main:main",
        ]
    },
    description="Run scripted prompt sessions against several chatbots side by side and play them against each other in cooperation games.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
