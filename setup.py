from setuptools import setup, find_packages

setup(
    name="xglint",
    version="0.1.0",
    description="Polygonal grids and conservative regridding operators between GCM and ice-sheet meshes.",
    author="Jun SASAKI",
    author_email="jsasaki.ece@gmail.com",
    packages=find_packages(include=["xglint", "xglint.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "xarray",
        "netCDF4",
        "pyproj",
        "scipy",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.11",
)
