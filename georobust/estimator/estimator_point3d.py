import numpy as np

from georobust.model import CoordinatesType, Point3D
from georobust.solver.solver_point3d_three_plane import SolverPoint3DThreePlane

from .estimator import Estimator


class EstimatorPoint3D(Estimator):
    """ 由平面集合估计其公共交点，数据为 (N,4) 平面方程 [a, b, c, d]

    参数
    ----------
    coordinates_type : CoordinatesType 可选
        细化时使用非齐次（3 个参数）或齐次（4 个参数）坐标
    """

    MINIMUM_SIZE = 3
    DATA_DIMENSION = 4
    DEFAULT_THRESHOLD = 1e-7
    DEFAULT_STOP_THRESHOLD = 1e-6

    def __init__(self,
                 minimalSolver=SolverPoint3DThreePlane,
                 nonMinimalSolver=SolverPoint3DThreePlane,
                 coordinates_type=CoordinatesType.INHOMOGENEOUS_COORDINATES):
        super().__init__(minimalSolver, nonMinimalSolver)
        self.coordinates_type = coordinates_type

    def residuals(self, data, model):
        """ 点到各平面的距离 """
        return np.abs(self.refinementResiduals(data, model))

    def refinementResiduals(self, data, model):
        normal_norms = np.linalg.norm(data[:, 0:3], axis=1)
        return np.dot(data, np.r_[model.inhomogeneous, 1.0]) / normal_norms

    def parameterNumber(self):
        if self.coordinates_type == CoordinatesType.HOMOGENEOUS_COORDINATES:
            return 4
        return 3

    def modelToParameters(self, model):
        if self.coordinates_type == CoordinatesType.HOMOGENEOUS_COORDINATES:
            return np.array(model.descriptor, dtype=np.float64)
        return model.inhomogeneous

    def parametersToModel(self, parameters):
        if self.coordinates_type == CoordinatesType.HOMOGENEOUS_COORDINATES:
            return Point3D(parameters)
        return Point3D.fromInhomogeneous(parameters)
