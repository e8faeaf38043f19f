from setuptools import setup, find_packages

setup(
    name="routegraph",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic>=2",
        "mirascope>=1,<2",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    python_requires=">=3.9",
    # Add metadata for PyPI
    description="graph/state-machine engine for LLM agent and tool-loop workflows",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
