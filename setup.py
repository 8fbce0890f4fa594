import os.path
import re

from setuptools import find_namespace_packages, setup

VERSION_RE = re.compile(r"""__version__ = ['"]([0-9.]+)['"]""")
BASE_PATH = os.path.dirname(__file__)


with open(os.path.join(BASE_PATH, "sigil", "__init__.py")) as f:
    try:
        version = VERSION_RE.search(f.read()).group(1)
    except IndexError:
        raise RuntimeError("Unable to determine version.")


with open(os.path.join(BASE_PATH, "README.md")) as readme:
    long_description = readme.read()


setup(
    name="sigil",
    description="A tcp/udp port forwarder that relays a local address "
    "to one fixed remote address.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    version=version,
    packages=find_namespace_packages(include=["sigil*"]),
    python_requires=">=3.7",
    install_requires=["curio>=1.4", "pylru>=1.0.9"],
    extras_require={"test": ["pytest", "coverage", "pytest-cov"]},
    entry_points={"console_scripts": ["sigil = sigil.__main__:main"]},
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.7",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    tests_require=["pytest", "coverage", "pytest-cov"],
)
