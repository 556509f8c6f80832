import logging
import math as m

import numpy as np

from georobust.utils.uniform_random_generator import UniformRandomGenerator

from .sampler import Sampler

logger = logging.getLogger(__name__)


class ProsacSampler(Sampler):
    """ PROSAC 渐进采样器，PROSAC 与 PROMedS 使用

    数据点按质量分数降序排列，采样在逐渐增长的前缀子集中进行，
    迭代次数超过 ransac_convergence_iterations 后退化为均匀采样
    """

    def __init__(self,
                 container,
                 sample_size,
                 quality_scores,
                 ransac_convergence_iterations=100000,
                 seed=None):
        """ 初始化 PORSAC 采样器

        参数
        ----------
        container : numpy
            采样的数据点集
        sample_size : int
            采样的样本数
        quality_scores : numpy
            每个数据点的质量分数，越大越好
        ransac_convergence_iterations : int 可选
            完全退化为均匀采样前的迭代次数
        seed : int 可选
            随机种子
        """
        super().__init__(container)
        self.random_generator = UniformRandomGenerator(seed)

        self.sample_size = sample_size
        self.point_number = np.shape(container)[0]
        self.ransac_convergence_iterations = ransac_convergence_iterations
        self.kth_sample_number = 1      # prosac 采样迭代次数
        self.subset_size = 0            # 当前采样子集大小
        self.largest_sample_size = 0    # 最大子集大小
        self.growth_function = []       # PROSAC 增长函数
        # 按质量分数降序排列的数据点序号，分数相同时保持原顺序
        self.sorted_indices = np.argsort(-np.asarray(quality_scores, dtype=np.float64), kind='stable')

        self.initialized = self.initialize(container)

    def initialize(self, container):
        """ PROSAC 采样初始化 growth_function """
        self.growth_function = [0 for i in range(self.point_number)]

        # 数据点 U_N 按质量分数降序排列，T_n 为 T_N 个均匀采样中只包含 U_n 中点的样本平均数目
        #                                  n - i
        # T_n = T_N * Product i = 0...m-1 -------, n >= sample size, N = points size
        #                                  N - i
        T_n = float(self.ransac_convergence_iterations)
        for i in range(self.sample_size):
            T_n *= (self.sample_size - i) / (self.point_number - i)

        T_n_prime = 1
        #             n + 1
        # T(n+1) = --------- T(n), m is sample size.
        #           n + 1 - m
        # g(t) = min {n, T'_(n) >= t}
        # T'_(n+1) = T'_(n) + (T_(n+1) - T_(n))
        for i in range(self.point_number):
            if i + 1 <= self.sample_size:
                self.growth_function[i] = T_n_prime
                continue
            Tn_plus1 = float(i + 1) * T_n / (i + 1 - self.sample_size)
            self.growth_function[i] = T_n_prime + m.ceil(Tn_plus1 - T_n)
            T_n = Tn_plus1
            T_n_prime = self.growth_function[i]

        self.largest_sample_size = self.sample_size
        self.subset_size = self.sample_size     # 当前采样池的点集大小

        # 子集中最后一个点总会被选中，随机数只在其余点中产生
        self.random_generator.resetGenerator(0, self.subset_size - 2)
        return True

    def sample(self, pool, sample_size):
        """ 根据给定的采样池和样本大小进行采样

        参数
        ----------
        pool : list(int)
            采样的数据集合的序号池，与构造时的数据点集对应
        sample_size : int
            采样的样本数

        返回
        ----------
        list
            采样的数据集合序号列表
        """
        if sample_size != self.sample_size:
            logger.warning("PROSAC 采样器以样本大小 %d 初始化，无法采样 %d 个点",
                           self.sample_size, sample_size)
            return []

        # PROSAC 已完全退化为 RANSAC，则进行均匀随机采样
        if self.kth_sample_number > self.ransac_convergence_iterations:
            subset = self.random_generator.generateUniqueRandomSet(sample_size)
        else:
            # 产生 PROSAC 样本 [0, subset_size-2]
            subset = self.random_generator.generateUniqueRandomSet(self.sample_size - 1)
            # 最后一个索引是当前使用的子集末尾的点的索引
            subset.append(self.subset_size - 1)
            self.__incrementIterationNumber()

        # 用排序后的序号替换子集中的位置
        return [pool[self.sorted_indices[i]] for i in subset]

    def setSampleNumber(self, k):
        """ 外部设置目前采样次数为第 k 次 PROSAC 采样"""
        self.kth_sample_number = k
        self.__updateSubsetSize()

    def __incrementIterationNumber(self):
        self.kth_sample_number += 1 # PROSAC 迭代数自增
        self.__updateSubsetSize()

    def __updateSubsetSize(self):
        # 如果与 RANSAC 完全相同，则设置随机生成器以从所有可能的索引生成值
        if self.kth_sample_number > self.ransac_convergence_iterations:
            self.random_generator.resetGenerator(0, self.point_number - 1)
            return
        # 根据需要增加采样池的大小
        while self.subset_size < self.point_number and\
                self.kth_sample_number > self.growth_function[self.subset_size - 1]:
            self.subset_size += 1 # n = n + 1
            if self.largest_sample_size < self.subset_size:
                self.largest_sample_size = self.subset_size
        # 重置随机生成器以从当前点子集生成值，但最后一个除外，因为它将始终被使用
        self.random_generator.resetGenerator(0, self.subset_size - 2)
