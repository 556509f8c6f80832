import numpy as np

from georobust.model import Quadric
from georobust.solver.solver_quadric_nine_point import SolverQuadricNinePoint

from .estimator import Estimator
from .estimator_conic import _normalizedHomogeneous


class EstimatorQuadric(Estimator):
    """ 三维二次曲面估计器，数据为 (N,3) 点集，残差为代数误差 |x^T Q x| """

    MINIMUM_SIZE = 9
    DATA_DIMENSION = 3
    DEFAULT_THRESHOLD = 1e-7
    DEFAULT_STOP_THRESHOLD = 1e-6

    def __init__(self, minimalSolver=SolverQuadricNinePoint, nonMinimalSolver=SolverQuadricNinePoint):
        super().__init__(minimalSolver, nonMinimalSolver)

    def residuals(self, data, model):
        return np.abs(self.refinementResiduals(data, model))

    def refinementResiduals(self, data, model):
        x = _normalizedHomogeneous(data)
        return np.einsum('ij,jk,ik->i', x, model.descriptor, x)

    def parameterNumber(self):
        """ 齐次参数 [a, b, c, d, e, f, g, h, i, j] """
        return 10

    def modelToParameters(self, model):
        return model.parameters

    def parametersToModel(self, parameters):
        return Quadric.fromParameters(parameters)
