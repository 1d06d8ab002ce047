from setuptools import setup, find_packages

setup(
    name='jsx-to-html',
    version='0.1.0',
    py_modules=['jsx2html', 'builder'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'jsxhtml.runtime': ['*.js', '*.mjs'],
    },
    python_requires='>=3.9',
    install_requires=[
        'lark',
        'pydantic>=2',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'jsx2html = jsx2html:main',
        ],
    },
)
