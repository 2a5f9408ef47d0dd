""" hdkey build script for setuptools.

"""

from setuptools import find_packages, setup  # type: ignore

import hdkey

with open("README.md", "r", encoding="ascii") as file_:
    longdescription = file_.read()

setup(
    name=hdkey.name,
    version=hdkey.__version__,
    license=hdkey.__license__,
    author=hdkey.__author__,
    author_email=hdkey.__author_email__,
    description="BIP32 hierarchical deterministic private key derivation",
    long_description=longdescription,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"hdkey": ["_data/*.json"]},
    include_package_data=True,
    install_requires=["btclib<2024", "dataclasses_json", "mnemonic"],
    extras_require={
        "secp256k1": ["btclib_libsecp256k1"],
        "test": ["pytest"],
    },
    keywords="bitcoin bip32 bip39 bip44 bip45 hd-wallet base58 secp256k1",
    python_requires=">=3.8",
    classifiers=[
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)
