from setuptools import setup, find_packages

setup(
    name="fsx-s3-stack",
    version="0.1.0",
    description="FSx for Lustre backed by S3, with a compute instance that mounts it, as code",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="fsx-s3-stack contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"fsx_stack.assets": ["*.cron", "*.sh"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "click>=8.0.0",
        "pyyaml>=6.0",
        "loguru>=0.7.0",
        "pulumi>=3.0.0,<4.0.0",
        "pulumi-aws>=6.0.0,<7.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "mypy>=1.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fsx-stack=fsx_stack.cli.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
