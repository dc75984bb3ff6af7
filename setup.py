from setuptools import setup, find_packages
import logging
import datetime as dt
logger = logging.getLogger('gpsgridder.setup')
stream = logging.StreamHandler()
stream.setLevel(logging.INFO)
logger.setLevel(logging.INFO)
form = logging.Formatter('%(asctime)-15s %(name)-25s %(levelname)s - %(threadName)s %(message)s',
                         '%Y-%m-%d %H:%M:%S')
stream.setFormatter(form)
logger.addHandler(stream)
date = dt.date.today().strftime('%y%m%d')

if __name__ == '__main__':
    setup(
        name='gpsgridder',
        version=f'0.0.post{date}',
        packages=find_packages(include=['gpsgridder', 'gpsgridder.*']),
        url='https://github.com/demiangomez/Parallel.GAMIT',
        license='',
        author='Demian Gomez & Peter Matheny',
        author_email='',
        description='Interpolation of GPS velocities with the Green functions of a thin elastic sheet',
        python_requires='>=3.8',
        install_requires=['numpy', 'netCDF4', 'matplotlib', 'tqdm'],
        extras_require={'test': ['pytest']},
        entry_points={'console_scripts': ['gpsgridder = gpsgridder.cli:main']}
    )
