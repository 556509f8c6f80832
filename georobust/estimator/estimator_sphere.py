import numpy as np

from georobust.model import Sphere
from georobust.solver.solver_sphere_four_point import SolverSphereFourPoint

from .estimator import Estimator


class EstimatorSphere(Estimator):
    """ 球面估计器，数据为 (N,3) 点集 """

    MINIMUM_SIZE = 4
    DATA_DIMENSION = 3
    DEFAULT_THRESHOLD = 1e-7
    DEFAULT_STOP_THRESHOLD = 1e-6

    def __init__(self, minimalSolver=SolverSphereFourPoint, nonMinimalSolver=SolverSphereFourPoint):
        super().__init__(minimalSolver, nonMinimalSolver)

    def residuals(self, data, model):
        """ 点到球面的距离 """
        return np.abs(self.refinementResiduals(data, model))

    def refinementResiduals(self, data, model):
        # 点到球心的距离减去半径，球外为正，球内为负
        return np.linalg.norm(data - model.center, axis=1) - model.radius

    def parameterNumber(self):
        return 4

    def modelToParameters(self, model):
        return np.array(model.descriptor, dtype=np.float64)

    def parametersToModel(self, parameters):
        return Sphere(center=parameters[0:3], radius=abs(parameters[3]))
