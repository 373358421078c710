from setuptools import setup, find_packages

setup(
    name="gcv_spline",
    version="0.1.0",
    description="Natural smoothing splines with generalized cross-validation",
    packages=find_packages(exclude=["tests", "tests.*", "docs"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "scipy",
        "scikit-learn",
    ],
    # Sphinx builds the docs from docs/conf.py
    extras_require={
        "test": ["pytest"],
        "docs": ["sphinx", "myst_parser", "nbsphinx"],
    },
)
