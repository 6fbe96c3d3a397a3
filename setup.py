from setuptools import setup, find_packages

setup(
    name="gitdiffy",
    version="1.0.0",
    packages=find_packages(include=["gitdiffy", "gitdiffy.*"]),
    install_requires=[
        "rich",
        "requests",
        "PyYAML",
    ],
    extras_require={
        "test": [
            "pytest",
            "GitPython",
        ],
    },
    entry_points={
        'console_scripts': [
            'gitdiffy=gitdiffy.cli:main_cli',
        ],
    },
    author="gitdiffy contributors",
    author_email="",
    description="Automatic, well-scoped Git commits driven by continuous work time",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    url="",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Version Control :: Git",
    ],
    python_requires=">=3.9",
)
