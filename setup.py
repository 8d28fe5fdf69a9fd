from setuptools import setup, find_packages

setup(
    name='calotrig',
    version='0.1',
    packages=find_packages(include=['calotrig', 'calotrig.*']),
    install_requires=[
        'uproot',
        'numpy',
        'hist',
        'awkward',
        'matplotlib',
        'mplhep'
    ],
    extras_require={
        'test': ['pytest'],
    },
    author='Dimitris Ntounis',
    author_email='dntounis@stanford.edu',
    description='Layer-1 calorimeter trigger emulation and HGCal cluster tools',
)
