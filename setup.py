from setuptools import setup, find_packages

setup(
    name="bash-lambda",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={
        "bash_lambda": ["templates/*.json"],
    },
    install_requires=[
        "boto3>=1.26.0",
        "packaging>=21.0",
    ],
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "bash-lambda=bash_lambda.cli:main",
        ],
    },
    description="A tool to deploy bash shell scripts to AWS Lambda using the bash runtime layer",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
            "moto>=5.0.0",
        ],
    },
)
