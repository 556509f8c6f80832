import numpy as np

from georobust.utils.uniform_random_generator import UniformRandomGenerator

from .sampler import Sampler


class UniformSampler(Sampler):
    """ 均匀随机采样器，RANSAC、LMedS、MSAC 使用 """

    def __init__(self, container, seed=None):
        super().__init__(container)
        self.random_generator = UniformRandomGenerator(seed)
        self.initialized = self.__initialize(container)

    def __initialize(self, container):
        """ 初始化样本构建，必须在样本被调用前"""
        self.random_generator.resetGenerator(0, np.shape(container)[0] - 1)
        return True

    def sample(self, pool, sample_size):
        if sample_size > len(pool):
            return []
        # 生成点集序号的随机序列
        subset = self.random_generator.generateUniqueRandomSet(sample_size, max=len(pool) - 1)
        # 用 pool 中的索引替换 subset 索引
        for i in range(sample_size):
            subset[i] = pool[subset[i]]
        return subset
