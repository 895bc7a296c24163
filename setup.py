# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="storage-visualizer",
    version="1.0.0",
    description="Hierarchical disk usage report of the directories that occupy the most storage",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["storage_visualizer*"]),
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'storage-visualizer=storage_visualizer.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
    ],
)
