import math as m

import numpy as np


class SolverEngine:
    """ 模型参数求解器基类 """

    # 判定系数矩阵秩亏（样本退化）的相对奇异值阈值
    RANK_TOLERANCE = 1e-10

    def __init__(self):
        pass

    def returnMultipleModels(self):
        """ 确定是否有可能返回多个模型 """
        return False

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return 0

    def estimateModel(self,
                      data,
                      sample,
                      sample_number,
                      weights=None):
        """ 从给定的样本点，加权拟合模型参数

        参数
        ----------
        data : numpy
            输入的数据点集
        sample : list
            用于估计模型的样本点序号列表，为 None 时使用前 sample_number 个点
        sample_number : int
            样本点的数目
        weights : numpy 可选
            数据点集中点的对应权重

        返回
        ----------
        list(Model)
            通过样本估计的模型列表，样本退化时为空列表
        """
        return []

    def _selectSample(self, data, sample, sample_number, weights):
        """ 取出样本点及其权重 """
        if sample is None:
            sample = np.arange(sample_number)
        sample = np.asarray(sample[0:sample_number], dtype=np.intp)
        if weights is None:
            sample_weights = np.ones(len(sample))
        else:
            sample_weights = np.asarray(weights, dtype=np.float64)[sample]
        return data[sample], sample_weights

    def _solveNullSpace(self, coefficients):
        """ 求解齐次线性方程组 A x = 0 的单位范数解

        A 可能为奇异矩阵，所以采用 SVD 求解最小二乘解：
        x 为 A 最小奇异值对应的右奇异向量。若 A 的秩小于未知数个数减一，
        则解不唯一，样本退化，返回 None
        """
        unknowns = np.shape(coefficients)[1]
        if np.shape(coefficients)[0] < unknowns - 1:
            return None
        if not np.all(np.isfinite(coefficients)):
            return None
        U, Sigma, VT = np.linalg.svd(coefficients)
        if Sigma[0] <= 0.0 or Sigma[unknowns - 2] / Sigma[0] < self.RANK_TOLERANCE:
            return None
        return VT[unknowns - 1]

    def _normalizePoints(self, points):
        """ 规范化点集

        将点集的质心平移到原点，并缩放使各点到质心的平均距离为 sqrt(d)

        返回
        ----------
        numpy, numpy
            归一化后的点集，(d+1)x(d+1) 归一化转换矩阵
        """
        dimension = np.shape(points)[1]
        mass_point = np.mean(points, axis=0)
        average_distance = np.mean(np.sqrt(np.sum((points - mass_point) ** 2, axis=1)))
        if average_distance < np.finfo(np.float64).eps:
            return None, None
        ratio = m.sqrt(dimension) / average_distance

        normalized_points = (points - mass_point) * ratio
        normalizing_transform = np.eye(dimension + 1)
        normalizing_transform[0:dimension, 0:dimension] *= ratio
        normalizing_transform[0:dimension, dimension] = -ratio * mass_point
        return normalized_points, normalizing_transform
