from setuptools import setup
import os

def readme():
    with open(os.path.join(
            os.path.dirname(os.path.abspath(__file__)),
            'README.md'
            ), encoding='utf8') as fp:
        return fp.read()

setup(
    name = 'aaarat',
    version = '1.0.0',
    description = 'Adaptive rational approximation by the AAA algorithm',
    long_description = readme(),
    long_description_content_type = 'text/markdown',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Mathematics',
        'License :: OSI Approved :: BSD License',
    ],
    py_modules = ['aaarat'],
    python_requires = '>=3.7',
    install_requires = [
        'numpy>=1.17',
        'scipy',
    ],
    extras_require = {
        'test': ['pytest'],
    },
)
