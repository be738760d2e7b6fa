"""
Setup for the mlm build system

Runtime requirements:
- Rust toolchain with cargo (rustup with a nightly channel for `fmt` and `stats`)
- Optional: system RocksDB (librocksdb.so in /usr/lib or /usr/lib64)

System RocksDB:
- Detected automatically and exported to cargo as ROCKSDB_LIB_DIR
- Disable with: export MLM_BUNDLED_ROCKSDB=1 (any value, presence is enough)
- Or per invocation: mlm-build --bundled build

Toolchain override:
- Set MLM_BUILD_TOOLCHAIN to run a different cargo binary or wrapper
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read README for long description
readme_path = Path("README.md")
long_description = ""
if readme_path.exists():
    with open(readme_path, "r", encoding="utf-8") as f:
        long_description = f.read()

setup(
    name="mlm-build",
    version="1.0.0",
    description="Build orchestration for the mlm engine with system or bundled RocksDB",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["mlm_build", "mlm_build.*"]),
    package_data={
        "mlm_build": [
            "config/*.yaml",
        ]
    },
    include_package_data=True,
    entry_points={
        "console_scripts": [
            "mlm-build=mlm_build.main:main",
        ],
    },
    zip_safe=False,
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-cov",
            "black",
            "flake8",
            "mypy",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Operating System :: POSIX :: Linux",
        "Topic :: Software Development :: Build Tools",
    ],
)
