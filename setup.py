#!/usr/bin/env python

from setuptools import setup, find_packages

with open('vnacal/__init__.py') as fid:
    for line in fid:
        if line.startswith('__version__'):
            VERSION = line.strip().split()[-1][1:-1]
            break

LONG_DESCRIPTION = """
	scikit-vnacal builds the linear error term equations of vector network analyzer calibrations from measured standards.
"""
setup(name='scikit-vnacal',
	version=VERSION,
	license='new BSD',
	description='Vector network analyzer calibration equations',
	long_description=LONG_DESCRIPTION,
	packages=find_packages(include=['vnacal', 'vnacal.*']),
	python_requires='>=3.8',
	install_requires = [
		'numpy',
		'pandas',
		],
	extras_require = {
		'test': [
			'pytest',
			'scipy',
			],
		},
	package_dir={'vnacal':'vnacal'},
	include_package_data = True,
	)
