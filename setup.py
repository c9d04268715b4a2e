"""Setup for the erasure cascade service and SDK."""

from setuptools import find_packages, setup

api_packages = find_packages(where="apps/api", exclude=["tests", "tests.*"])
sdk_packages = find_packages(where="packages/sdk-python")

setup(
    name="erasure-cascade",
    version="0.1.0",
    description="Deletion request cascade and billing webhook service",
    packages=api_packages + sdk_packages,
    package_dir={
        "erasure_api": "apps/api/erasure_api",
        "erasure_sdk": "packages/sdk-python/erasure_sdk",
    },
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "sqlalchemy>=2.0.0",
        "alembic>=1.13.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "httpx>=0.27.0",
        "cryptography>=42.0.0",
        "stripe>=8.0.0",
        "prometheus-client>=0.19.0",
        "click>=8.1.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "erasure-api=erasure_api.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
