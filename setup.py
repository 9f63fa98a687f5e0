"""setuptools setup for FocusTrack.

Install for development:
    pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name="focustrack",
    version="0.1.0",
    description="Focus-session tracking with daily productivity rollups",
    packages=find_packages(include=["focustrack", "focustrack.*"]),
    python_requires=">=3.10",
    install_requires=[
        "SQLAlchemy>=2.0",
        "PyQt6>=6.4",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["focustrack=focustrack.__main__:main"],
    },
)
