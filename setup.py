from setuptools import setup


with open('pgish/_version.py') as f:
    exec(f.read())

test_dependencies = [
    'pytest>=7.2',
    'pytest-trio>=0.8.0',
]

dev_dependencies = test_dependencies + [
    'wheel',
    'twine',
]

setup(
    name='pgish',
    version=__version__,
    description='A Trio-Based PostgreSQL Wire Protocol Emulator',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    license='MIT',
    packages=['pgish'],
    zip_safe=False,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    install_requires=[
        'trio>=0.22.0',
    ],
    extras_require={
        'test': test_dependencies,
        'dev': dev_dependencies,
    },
)
