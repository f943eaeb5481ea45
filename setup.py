from setuptools import setup, find_packages
import re

# Read version from freelancetax/__init__.py
with open('freelancetax/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='freelance-tax',
    version=version,
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'freelancetax': ['tax_rules/*.yaml'],
    },
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'requests>=2.28',
        'rich>=13.0',
    ],
    extras_require={
        'mcp': [
            'mcp[cli]>=1.0.0,<2',
        ],
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'freelance-tax=freelancetax.cli.__main__:main',
            'freelance-tax-mcp=freelancetax.mcp.server:run_server',
        ],
    },
    author='Personal',
    description='Monthly and yearly tax calculations for Polish B2B freelancers.',
    python_requires='>=3.10',
)
