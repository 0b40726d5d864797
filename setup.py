# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- CONFIGURATION ---
    "pydantic>=2.0.0",
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",

    # --- TRANSPORT ---
    "httpx>=0.27.0",  # Default remote transport
]

extras_require = {
    # --- TESTS---
    "test": [
        "pytest-asyncio==1.3.0",
        "pytest",
    ],
}

setup(
    name="gridsync",
    version="0.3.0",
    description="GridSync | paginated, sortable, searchable table views over local or remote data",
    packages=find_packages(include=["gridsync", "gridsync.*"]),
    include_package_data=True,
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.11",
)
