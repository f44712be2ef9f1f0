from setuptools import setup, find_packages
import pathlib

# Detect layout
use_src = pathlib.Path("src/payloadtools").exists()
pkg_args = {"package_dir": {"": "src"}, "packages": find_packages(where="src")} if use_src \
           else {"packages": find_packages(where=".")}

setup(
    name="payload-tools",
    version="0.1.0",
    description="Declarative hydration of request payloads into typed, validated records",
    python_requires=">=3.10",
    include_package_data=True,
    install_requires=[
        "pyyaml",
        "jinja2",
        "jsonschema",
        "pydantic>=2",
        "typer",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "payloadtools=payloadtools.cli:app",
        ],
    },
    **pkg_args
)
