from setuptools import setup, find_packages

setup(
    name="mcp-workflows",
    version="0.1.0",
    description="Declarative workflow orchestration exposed as callable tools",
    author="MCP Team",
    packages=find_packages(include=["config*", "mcp_core*", "utils*", "workflows*"]),
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "click>=8.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mcp-workflows=workflows.cli:main",
        ],
    },
    python_requires=">=3.8",
)
