import cv2
import numpy as np

from georobust.model import PinholeCamera
from georobust.solver.solver_pinhole_camera_dlt import SolverPinholeCameraDLT

from .estimator import Estimator


class EstimatorPinholeCamera(Estimator):
    """ 针孔相机估计器

    数据为 (N,5) 的 3D-2D 点对应集合 [X, Y, Z, u, v]，残差为重投影误差（像素）。
    细化时相机被分解为 11 个参数：
    [fx, fy, skew, cx, cy, 旋转向量(3), 相机中心(3)]
    """

    MINIMUM_SIZE = 6
    DATA_DIMENSION = 5
    DEFAULT_THRESHOLD = 1.0
    DEFAULT_STOP_THRESHOLD = 1.0

    def __init__(self, minimalSolver=SolverPinholeCameraDLT, nonMinimalSolver=SolverPinholeCameraDLT):
        super().__init__(minimalSolver, nonMinimalSolver)

    def residuals(self, data, model):
        return np.linalg.norm(model.project(data[:, 0:3]) - data[:, 3:5], axis=1)

    def refinementResiduals(self, data, model):
        return (model.project(data[:, 0:3]) - data[:, 3:5]).ravel()

    def parameterNumber(self):
        return 11

    def modelToParameters(self, model):
        intrinsic, rotation, center = model.decompose()
        rotation_vector, _ = cv2.Rodrigues(np.ascontiguousarray(rotation, dtype=np.float64))
        return np.r_[intrinsic[0, 0], intrinsic[1, 1], intrinsic[0, 1], intrinsic[0, 2], intrinsic[1, 2],
                     rotation_vector.ravel(), center]

    def parametersToModel(self, parameters):
        fx, fy, skew, cx, cy = parameters[0:5]
        intrinsic = np.array([[fx, skew, cx],
                              [0.0, fy, cy],
                              [0.0, 0.0, 1.0]])
        rotation, _ = cv2.Rodrigues(np.asarray(parameters[5:8], dtype=np.float64).reshape(3, 1))
        return PinholeCamera.fromDecomposition(intrinsic, rotation, parameters[8:11])
