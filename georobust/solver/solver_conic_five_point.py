import numpy as np

from georobust.model import Conic
from georobust.solver.solver_engine import SolverEngine


class SolverConicFivePoint(SolverEngine):
    """ 五点法求解二维圆锥曲线模型参数 """

    def __init__(self):
        pass

    def returnMultipleModels(self):
        """ 确定是否有可能返回多个模型 """
        return False

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return 5

    def estimateModel(self,
                      data,
                      sample,
                      sample_number,
                      weights=None):
        """ 从给定的样本点，加权拟合圆锥曲线模型参数

        参数
        ----------
        data : numpy
            输入的 (N,2) 数据点集
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

        ''' 1. 归一化 '''
        normalized_points, normalizing_transform = self._normalizePoints(points)
        if normalized_points is None:
            return []

        ''' 2. 求线性解 '''
        # 每个点提供一行 [x^2, xy, y^2, x, y, 1]
        x = normalized_points[:, 0]
        y = normalized_points[:, 1]
        coefficients = np.c_[x * x, x * y, y * y, x, y, np.ones(len(x))]
        coefficients *= sample_weights[:, np.newaxis]

        solution = self._solveNullSpace(coefficients)
        if solution is None:
            return []

        ''' 3. 解除归一化 '''
        # x' = T x，所以 x'^T C' x' = x^T (T^T C' T) x
        normalized_conic = Conic.fromParameters(solution)
        matrix = np.dot(np.dot(normalizing_transform.T, normalized_conic.descriptor), normalizing_transform)
        return [Conic(matrix)]
