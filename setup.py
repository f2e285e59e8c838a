#!/usr/bin/python3
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
import os

ROOT = os.path.abspath(os.path.dirname(__file__))

with open(os.path.join(ROOT, 'README.md'), 'r', encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='pyeostoolbox',
    include_package_data=True,
    version='0.1.0',
    packages=find_packages(),
    description='pyEOSToolbox - Helmholtz energy equations of state and phase equilibria',
    long_description=long_description,
    long_description_content_type='text/markdown',
    keywords=['equation of state', 'thermodynamics', 'phase equilibria', 'helmholtz'],
    classifiers=[],
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'tabulate',
        'pint',
        'setuptools'
    ],
    extras_require={
        'test': ['pytest'],
    }
)
