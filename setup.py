from setuptools import find_packages, setup

__VERSION__ = '0.1.0'

with open("README.rst", "r") as fh:
    long_description = fh.read()

setup(
    name='pyapkinfo',
    version=__VERSION__,
    url='https://github.com/appknox/pyapkinfo',

    author='Subho Halder',
    author_email='sunny@appknox.com',
    license='Apache License 2.0',

    packages=find_packages(exclude=['tests', 'tests.*', 'examples']),
    include_package_data=True,
    zip_safe=False,
    platforms='any',
    install_requires=['lxml', 'click>=6.7'],
    extras_require={
        'test': ['pytest'],
    },
    entry_points='''
    [console_scripts]
    apkinfo = pyapkinfo.cli:main
    ''',
    description="Read package name, app name and version of an Android APK",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    keywords='appknox apk axmlparser arscparser android',
    python_requires='>=3.5',
    classifiers=[
        'Development Status :: 4 - Beta',

        'Intended Audience :: Developers',

        'License :: OSI Approved :: Apache Software License',

        'Operating System :: POSIX',
        'Operating System :: MacOS',
        'Operating System :: Unix',

        'Programming Language :: Python',
        'Programming Language :: Python :: 3',

        'Topic :: Software Development :: Build Tools',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ]
)
