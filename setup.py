"""
GridScale 项目构建配置

支持多种安装方式和分发策略
"""

from setuptools import setup, find_packages
import os

# 读取 README 文件
def read_readme():
    with open("README.md", "r", encoding="utf-8") as fh:
        return fh.read()

# 读取依赖文件
def read_requirements():
    requirements = []
    if os.path.exists("requirements.txt"):
        with open("requirements.txt", "r", encoding="utf-8") as fh:
            requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]
    return requirements

# 读取开发依赖
def read_dev_requirements():
    dev_requirements = []
    if os.path.exists("requirements-dev.txt"):
        with open("requirements-dev.txt", "r", encoding="utf-8") as fh:
            dev_requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]
    return dev_requirements

setup(
    name="gridscale-core",
    version="0.1.0",
    author="Arsenal Team",
    author_email="liugaosheng@kanzhun.com",
    description="集群节点池自动扩缩容控制循环 - GridScale",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["gridscale", "gridscale.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Clustering",
        "Topic :: System :: Distributed Computing",
    ],
    python_requires=">=3.9",
    install_requires=read_requirements(),
    extras_require={
        "dev": read_dev_requirements(),
        "test": read_dev_requirements(),
    },
    entry_points={
        "console_scripts": [
            "gridscale=gridscale.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "gridscale": [
            "config/*.yaml",
        ],
    },
    zip_safe=False,
    keywords=[
        "autoscaling",
        "hpc",
        "cluster",
        "ray",
        "resource-management",
    ],
)
