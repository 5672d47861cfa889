# -*- coding: utf-8 -*-
from setuptools import setup

packages = \
['hwmlib',
 'hwmlib.transport']

package_data = \
{'': ['*']}

modules = \
['hwm']
install_requires = \
['hidapi>=0.14.0',
 'semver>=3.0.1,<4.0.0',
 'websocket-client>=1.6.0,<2.0.0']

entry_points = \
{'console_scripts': ['hwm = hwmlib._cli:main']}

setup_kwargs = {
    'name': 'hwm',
    'version': '1.0.0',
    'description': 'A library for querying hardware wallet firmwares and installing applications on them',
    'long_description': "# Hardware Wallet Manager\n\nThe Hardware Wallet Manager is a Python library and command line tool for querying the firmware of Ledger hardware wallets and installing applications on them.\nThe installation itself is driven by a remote orchestrator: HWM relays the APDUs it sends over a websocket to the device.\n\n## Install\n\n```\npip3 install .\n```\n\n## Usage\n\nTo use, first enumerate all devices and find the one that you want to use with\n\n```\n./hwm.py enumerate\n```\n\nThen issue commands to it like so:\n\n```\n./hwm.py -d <path> getdeviceinfo\n./hwm.py -d <path> install app.json\n```\n\nAll output will be in JSON form and sent to `stdout`.\nAdditional information will be sent to `stderr` and will not necessarily be in JSON.\n",
    'author': 'HWM developers',
    'author_email': 'None',
    'maintainer': 'None',
    'maintainer_email': 'None',
    'url': 'None',
    'packages': packages,
    'package_data': package_data,
    'py_modules': modules,
    'install_requires': install_requires,
    'entry_points': entry_points,
    'python_requires': '>=3.8',
}


setup(**setup_kwargs)
