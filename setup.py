from setuptools import setup, find_packages

setup(
    name="topology_force_view",
    version="1.0.0",
    description="Live network topology force-graph view driven by controller events",
    author="Topology Force View Team",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires=">=3.8",
    install_requires=[
        'flask>=2.0.0',
        'flask-socketio>=5.3.0',
        'python-socketio[client]>=5.0.0',
        'networkx>=2.6',
        'matplotlib>=3.3.0',
        'requests>=2.25.0',
    ],
    extras_require={
        'dev': [
            'pytest>=6.0.0',
            'pytest-cov>=2.0.0',
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: System :: Networking",
        "Topic :: Scientific/Engineering :: Visualization",
    ],
)
