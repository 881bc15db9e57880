# torchhtm setuptools configuration
from setuptools import find_packages, setup

setup(
    name="torchhtm",
    version="0.1.0",
    description="Hierarchical Triangular Mesh spatial indexing for PyTorch",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "torch>=2.0",
        "numpy>=1.22",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "astropy>=5.0",
        ],
    },
)
