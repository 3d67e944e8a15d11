from setuptools import setup, find_packages

setup(
    name='crossjdk',
    version='0.1.0',
    description='JDK runtime archive acquisition and transcoding for cross-compiling builds',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'urllib3',
        'PyYAML',
        'rich',
        'platformdirs',
        'packaging',
    ],
    extras_require={
        'test': [
            'pytest<9.1',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'crossjdk=crossjdk.cli:main',
        ],
    },
)
