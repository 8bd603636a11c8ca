from setuptools import setup, find_packages

setup(
    name="pycone",
    version="0.1.0",
    packages=find_packages(exclude=["test", "test.*"]),
    install_requires=["numpy", "scipy", "matplotlib"],
    extras_require={"test": ["pytest"]},
    python_requires=">=3.8",
    author="Your Name",
    description="Projections onto cones and the derivatives of those projections",
    license="MIT",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License"
    ]
)
