"""
Setup file.
"""

import os

from setuptools import setup

URL = "https://github.com/rocksbuild/rocksbuild"
KEYWORDS = "rocksdb snappy native build cargo bindgen static-library cache"
HERE = os.path.dirname(os.path.abspath(__file__))



if __name__ == "__main__":
    setup(
        keywords=KEYWORDS,
        url=URL,
        package_data={"rocksbuild": ["data/*.txt", "data/*.cc"]},
        include_package_data=True)
