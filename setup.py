from setuptools import setup, find_packages

setup(
    name='scalectl',
    version='0.1.0',
    packages=find_packages(exclude=['scalectl.tests']),
    include_package_data=True,
    install_requires=[
        'typer',
        'rich',
        'paramiko',
        'pydantic>=2',
        'PyYAML',
        'python-dotenv',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'scalectl=scalectl.cli:app'
        ]
    },
    description='Guided, resumable deployment of IBM Storage Scale clusters',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.8',
)
