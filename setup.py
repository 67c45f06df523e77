"""
Packaging and distribution script for the QSobol project.

This file uses "setuptools" to manage the packaging, installation, and
distribution of the "QSobol" sensitivity index estimator. It defines
essential metadata such as the project's name, version, and author.

The script also specifies:
- Core dependencies required for the estimator to run.
- Optional dependencies for development (e.g., testing) and for building
  the documentation.

:Authors:
 - QSobol developers
"""
from setuptools import setup, find_namespace_packages

requires = [
    "numpy >= 1.25",
    "pandas",
    "scipy >= 1.10",
    "matplotlib",
    "dynaconf >= 3.2, < 3.3",
    "python-dotenv",
    "gitinfo",
    "psutil",
]

extras_require = {
    "dev": [
        "pytest >= 4.6",
        "pytest-cov",
    ],
    "docs": [
        "sphinx",
        "numpydoc",
        "sphinx_rtd_theme",
    ],
}

setup(
    name="QSobol",
    version="0.1",
    description="Quasi-Monte Carlo estimation of Sobol' sensitivity indices",
    long_description="Pick-and-freeze estimator of lower and total Sobol' indices "
    "driven by randomised Halton and Sobol' sequences",
    author="QSobol developers",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["helpers", "modules", "plotting",
                                                           "settings"]),
    py_modules=["Run"],
    package_data={"settings": ["*.toml", "*.conf"]},
    include_package_data=True,
    install_requires=requires,
    extras_require=extras_require,
    keywords="sensitivity analysis Sobol indices quasi Monte Carlo Halton",
    license="GPL-3.0-or-later",
    zip_safe=False,
    classifiers=[
        "Topic :: Scientific/Engineering",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Natural Language :: English",
    ],
    entry_points="""
        [console_scripts]
        qsobol=Run:main
    """,
    python_requires=">=3.9",
)
