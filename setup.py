"""Setup script for helloworld-otel"""

from setuptools import setup, find_packages

setup(
    name="helloworld-otel",
    version="0.1.0",
    python_requires=">=3.9",
    packages=find_packages(where="python-glue", exclude=["tests", "tests.*"]),
    package_dir={"": "python-glue"},
    install_requires=[
        "grpcio>=1.60.0",
        "protobuf>=4.25.0",
        "opentelemetry-api>=1.24.0",
        "opentelemetry-sdk>=1.24.0",
        "opentelemetry-exporter-otlp-proto-grpc>=1.24.0",
        "typer>=0.9.0",
        "rich>=13.7.0",
        "python-dotenv>=1.0.0",
        "toml>=0.10.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "greeter=helloworld_otel.cli.main:app",
        ],
    },
)
