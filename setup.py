"""
agentic-memory Setup Script

Install with: pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name='agentic-memory',
    version='0.1.0',
    description='Persistent vector + graph memory for agent workflows',
    packages=find_packages(include=['agentic_memory', 'agentic_memory.*']),
    install_requires=[
        'structlog>=24.1.0',
        'qdrant-client>=1.7.0',
        'falkordb>=1.0.0',
        'pyyaml>=6.0.1',
        'numpy>=1.26.0',
        'aiohttp>=3.9.0',
        'click>=8.2.0',
    ],
    extras_require={
        'embeddings': [
            'sentence-transformers>=2.2.0',
            'torch>=2.0.0',
        ],
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'agentic-memory=agentic_memory.cli:cli',
        ],
    },
    python_requires='>=3.11',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
        'Topic :: Database',
    ],
)
