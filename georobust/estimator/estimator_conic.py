import numpy as np

from georobust.model import Conic
from georobust.solver.solver_conic_five_point import SolverConicFivePoint

from .estimator import Estimator


def _normalizedHomogeneous(points):
    """ 将 (N,d) 非齐次点转换为单位范数的 (N,d+1) 齐次坐标 """
    homogeneous = np.c_[points, np.ones(np.shape(points)[0])]
    return homogeneous / np.linalg.norm(homogeneous, axis=1)[:, np.newaxis]


class EstimatorConic(Estimator):
    """ 二维圆锥曲线估计器，数据为 (N,2) 点集

    残差为代数误差 |x^T C x|，其中 x 为单位范数的齐次点，C 为归一化的圆锥曲线矩阵
    """

    MINIMUM_SIZE = 5
    DATA_DIMENSION = 2
    DEFAULT_THRESHOLD = 1e-7
    DEFAULT_STOP_THRESHOLD = 1e-6

    def __init__(self, minimalSolver=SolverConicFivePoint, nonMinimalSolver=SolverConicFivePoint):
        super().__init__(minimalSolver, nonMinimalSolver)

    def residuals(self, data, model):
        return np.abs(self.refinementResiduals(data, model))

    def refinementResiduals(self, data, model):
        x = _normalizedHomogeneous(data)
        return np.einsum('ij,jk,ik->i', x, model.descriptor, x)

    def parameterNumber(self):
        """ 齐次参数 [a, b, c, d, e, f] """
        return 6

    def modelToParameters(self, model):
        return model.parameters

    def parametersToModel(self, parameters):
        return Conic.fromParameters(parameters)
