from setuptools import setup, find_packages

setup(
    name="tolerant-edit-distance",
    version="0.1.0",
    description="Tolerant edit distance between voxel segmentations, solved as an ILP",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["tolerant_edit_distance*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "scipy",
        "ortools",
        "fastremap",
        "tqdm",
        "click>=8.1",
        "zarr",
        "universal-pathlib",
        "lazy_loader",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "ted=tolerant_edit_distance.cli:run",
        ],
    },
)
