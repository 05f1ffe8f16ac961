import setuptools

setuptools.setup(
        name='jointseg',
        version='v0.1.0',
        python_requires='>=3.8',
        packages=['jointseg'],
        package_dir={'': 'src'},
        description='Joint copy-ratio and allele-fraction segment modeling and smoothing',
        long_description='jointseg fits a joint Bayesian model of log2 copy ratio and minor allele fraction over a genome segmentation and merges statistically indistinguishable adjacent segments',
        install_requires=[
            'numpy',
            'scipy',
            'pandas',
            'numba',
            'tqdm',
        ],
        extras_require={
            'tests': ['pytest', 'pytest-benchmark'],
        },
        include_package_data=True
)
