from setuptools import setup, find_packages

setup(
    name="snagent",
    version="0.1.0",
    description="Storage node agent - registration and heartbeat over the control-plane message bus",
    author="snagent team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.16.0",
        "rich>=13.7.1",
        "pydantic>=2.5",
        "python-dotenv>=1.0.1",
        "nats-py>=2.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.3.2",
        ],
    },
    entry_points={
        "console_scripts": [
            "snagent=snagent.apps.cli.app:app",  # команда `snagent`
        ],
    },
)
