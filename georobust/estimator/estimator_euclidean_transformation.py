import cv2
import numpy as np

from georobust.model import EuclideanTransformation3D
from georobust.solver.solver_euclidean_transformation_three_point import SolverEuclideanTransformationThreePoint

from .estimator import Estimator


class EstimatorEuclideanTransformation(Estimator):
    """ 三维欧氏变换估计器

    数据为 (N,6) 点对应集合，源点 p 在前三列，目标点 q 在后三列，
    残差为变换后的源点与目标点的距离 ||R p + t - q||
    """

    MINIMUM_SIZE = 3
    DATA_DIMENSION = 6
    DEFAULT_THRESHOLD = 1.0
    DEFAULT_STOP_THRESHOLD = 1.0

    def __init__(self,
                 minimalSolver=SolverEuclideanTransformationThreePoint,
                 nonMinimalSolver=SolverEuclideanTransformationThreePoint):
        super().__init__(minimalSolver, nonMinimalSolver)

    def residuals(self, data, model):
        return np.linalg.norm(model.transform(data[:, 0:3]) - data[:, 3:6], axis=1)

    def refinementResiduals(self, data, model):
        return (model.transform(data[:, 0:3]) - data[:, 3:6]).ravel()

    def parameterNumber(self):
        """ 旋转向量（3）与平移（3） """
        return 6

    def modelToParameters(self, model):
        rotation_vector, _ = cv2.Rodrigues(np.ascontiguousarray(model.rotation, dtype=np.float64))
        return np.r_[rotation_vector.ravel(), model.translation]

    def parametersToModel(self, parameters):
        rotation, _ = cv2.Rodrigues(np.asarray(parameters[0:3], dtype=np.float64).reshape(3, 1))
        return EuclideanTransformation3D(rotation=rotation, translation=parameters[3:6])
