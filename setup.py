"""
setup.py for sslbuild

Runtime Requirements:
- C and C++ compiler (gcc/clang on Linux and macOS, MSVC on Windows)
- ar (or lib.exe) for static archives
- libclang, shipped by the libclang wheel or selected with LIBCLANG_PATH

Cross-Compilation Support:
- Set CC, CXX and AR to your cross toolchain
- Set CARGO_CFG_TARGET_OS / CARGO_CFG_TARGET_ARCH (or TARGET) to pick the
  assembly variant
- Example: CC=aarch64-linux-gnu-gcc CXX=aarch64-linux-gnu-g++ TARGET=aarch64-unknown-linux-gnu OUT_DIR=build sslbuild
"""

from pathlib import Path
from setuptools import setup, find_packages

long_description = ""
readme = Path(__file__).parent / "README.md"
if readme.exists():
    with open(readme, "r", encoding="utf-8") as f:
        long_description = f.read()

setup(
    name="sslbuild",
    version="1.0.0",
    description="Build orchestrator for vendored BoringSSL static libraries and their FFI bindings",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["sslbuild", "sslbuild.*"]),
    package_data={
        "sslbuild": [
            "config/build.yaml",
        ]
    },
    include_package_data=True,
    entry_points={
        "console_scripts": [
            "sslbuild=sslbuild.main:main",
        ],
    },
    zip_safe=False,
    python_requires=">=3.11",
    install_requires=[
        "PyYAML",
        "setuptools",
        "libclang",
        "cffi",
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
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: 3.14",
        "Programming Language :: C",
        "Programming Language :: C++",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Topic :: Software Development :: Build Tools",
    ],
)
