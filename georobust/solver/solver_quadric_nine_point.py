import numpy as np

from georobust.model import Quadric
from georobust.solver.solver_engine import SolverEngine


class SolverQuadricNinePoint(SolverEngine):
    """ 九点法求解三维二次曲面模型参数 """

    def __init__(self):
        pass

    def returnMultipleModels(self):
        """ 确定是否有可能返回多个模型 """
        return False

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return 9

    def estimateModel(self,
                      data,
                      sample,
                      sample_number,
                      weights=None):
        """ 从给定的样本点，加权拟合二次曲面模型参数

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

        normalized_points, normalizing_transform = self._normalizePoints(points)
        if normalized_points is None:
            return []

        # 每个点提供一行 [x^2, y^2, z^2, xy, xz, yz, x, y, z, 1]
        x = normalized_points[:, 0]
        y = normalized_points[:, 1]
        z = normalized_points[:, 2]
        coefficients = np.c_[x * x, y * y, z * z, x * y, x * z, y * z, x, y, z, np.ones(len(x))]
        coefficients *= sample_weights[:, np.newaxis]

        solution = self._solveNullSpace(coefficients)
        if solution is None:
            return []

        normalized_quadric = Quadric.fromParameters(solution)
        matrix = np.dot(np.dot(normalizing_transform.T, normalized_quadric.descriptor), normalizing_transform)
        return [Quadric(matrix)]
