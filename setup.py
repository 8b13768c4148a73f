from setuptools import setup

setup(name='tio-capture',
    version='0.1.0',
    description='Typed RPC calls and block captures for Twinleaf I/O (TIO) devices',
    long_description="Calls named RPCs on Twinleaf I/O devices with arguments and replies typed from the device's own metadata, and reads back block captures as float samples.",
    url='https://github.com/twinleaf/tio-python',
    author='Thomas Kornack',
    author_email='kornack@twinleaf.com',
    license='MIT',
    python_requires='>=3.6',
    install_requires=[
        'PyYAML',
        'pyserial',
        'hexdump',
    ],
    extras_require={
        'test': ['pytest'],
    },
    packages=[
        'tiorpc',
        'tiocapture',
        'tiotools',
    ],
    entry_points={
        'console_scripts': [
            'tio-rpc=tiotools.rpccall:main',
            'tio-capture=tiotools.capturetool:main',
        ],
    },
    zip_safe=False)
