from setuptools import setup


setup(name='insndb',
      version='0.1.0',
      description='x86 instruction database cleanup passes',
      classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Developers",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
            "Operating System :: POSIX",
            "Operating System :: MacOS :: MacOS X",
            "Operating System :: Microsoft :: Windows",
      ],
      packages=['insndb', 'insndb.model', 'insndb.x86'],
      python_requires='>=3.6.1',
      extras_require={
          'test': ['pytest', 'mypy', 'flake8'],
      },
      zip_safe=False)
