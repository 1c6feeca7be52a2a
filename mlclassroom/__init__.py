"""课堂机器学习模型生命周期服务"""

__version__ = "0.1.0"
