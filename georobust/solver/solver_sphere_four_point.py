import numpy as np

from georobust.model import Sphere
from georobust.solver.solver_engine import SolverEngine


class SolverSphereFourPoint(SolverEngine):
    """ 四点法求解球面模型参数 """

    def __init__(self):
        pass

    def returnMultipleModels(self):
        """ 确定是否有可能返回多个模型 """
        return False

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return 4

    def estimateModel(self,
                      data,
                      sample,
                      sample_number,
                      weights=None):
        """ 从给定的样本点，加权拟合球面模型参数

        球面方程 A (x^2 + y^2 + z^2) + D x + E y + F z + G = 0，
        当 A 趋近于 0 时样本点共面，无法确定球面

        参数
        ----------
        data : numpy
            输入的 (N,3) 数据点集
        sample : list
            用于估计模型的样本点序号列表
        sample_number : int
            样本点的数目
        weights : numpy 可选
            数据点集中点的对应权重

        返回
        ----------
        list(Model)
            通过样本估计的模型列表
        """
        points, sample_weights = self._selectSample(data, sample, sample_number, weights)

        # 对点坐标进行归一化以实现数值稳定性
        normalized_points, normalizing_transform = self._normalizePoints(points)
        if normalized_points is None:
            return []
        ratio = normalizing_transform[0, 0]
        mass_point = -normalizing_transform[0:3, 3] / ratio

        # 计算线性方程组参数矩阵
        x = normalized_points[:, 0]
        y = normalized_points[:, 1]
        z = normalized_points[:, 2]
        coefficients = np.c_[x ** 2 + y ** 2 + z ** 2, x, y, z, np.ones(len(x))]
        coefficients *= sample_weights[:, np.newaxis]

        solution = self._solveNullSpace(coefficients)
        if solution is None or abs(solution[0]) < self.RANK_TOLERANCE:
            return []
        solution = solution / solution[0]

        center = -solution[1:4] / 2.0
        squared_radius = np.dot(center, center) - solution[4]
        if squared_radius <= 0.0:
            return []

        # 解除归一化
        center = center / ratio + mass_point
        radius = np.sqrt(squared_radius) / ratio
        return [Sphere(center=center, radius=radius)]
