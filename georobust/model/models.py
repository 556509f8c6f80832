from enum import Enum

import numpy as np


class CoordinatesType(Enum):
    """ 模型细化时点坐标的表示方式 """
    INHOMOGENEOUS_COORDINATES = "inhomogeneous"
    HOMOGENEOUS_COORDINATES = "homogeneous"


class Model:
    """ 鲁棒估计求解模型基类 """

    def __init__(self):
        self.descriptor = None


class Sphere(Model):
    """ 三维球面模型，descriptor 为 [cx, cy, cz, r] """

    def __init__(self, center=np.zeros(3), radius=1.0):
        super().__init__()
        self.descriptor = np.r_[np.asarray(center, dtype=np.float64), float(radius)]

    @property
    def center(self):
        return self.descriptor[0:3]

    @property
    def radius(self):
        return self.descriptor[3]


class Conic(Model):
    """ 二维圆锥曲线模型

    曲线方程 a x^2 + b xy + c y^2 + d x + e y + f = 0，
    descriptor 为对应的 3x3 对称矩阵，且 Frobenius 范数归一化为 1
    """

    def __init__(self, matrix=np.eye(3)):
        super().__init__()
        self.descriptor = np.array(matrix, dtype=np.float64)
        self.normalize()

    @classmethod
    def fromParameters(cls, parameters):
        """ 由 [a, b, c, d, e, f] 构建圆锥曲线 """
        a, b, c, d, e, f = parameters
        matrix = np.array([[a, b / 2.0, d / 2.0],
                           [b / 2.0, c, e / 2.0],
                           [d / 2.0, e / 2.0, f]])
        return cls(matrix)

    @property
    def parameters(self):
        C = self.descriptor
        return np.array([C[0, 0], 2.0 * C[0, 1], C[1, 1],
                         2.0 * C[0, 2], 2.0 * C[1, 2], C[2, 2]])

    def normalize(self):
        norm = np.linalg.norm(self.descriptor)
        if norm > np.finfo(np.float64).eps:
            self.descriptor = self.descriptor / norm


class Quadric(Model):
    """ 三维二次曲面模型

    曲面方程 a x^2 + b y^2 + c z^2 + d xy + e xz + f yz + g x + h y + i z + j = 0，
    descriptor 为对应的 4x4 对称矩阵，且 Frobenius 范数归一化为 1
    """

    def __init__(self, matrix=np.eye(4)):
        super().__init__()
        self.descriptor = np.array(matrix, dtype=np.float64)
        self.normalize()

    @classmethod
    def fromParameters(cls, parameters):
        """ 由 [a, b, c, d, e, f, g, h, i, j] 构建二次曲面 """
        a, b, c, d, e, f, g, h, i, j = parameters
        matrix = np.array([[a, d / 2.0, e / 2.0, g / 2.0],
                           [d / 2.0, b, f / 2.0, h / 2.0],
                           [e / 2.0, f / 2.0, c, i / 2.0],
                           [g / 2.0, h / 2.0, i / 2.0, j]])
        return cls(matrix)

    @property
    def parameters(self):
        Q = self.descriptor
        return np.array([Q[0, 0], Q[1, 1], Q[2, 2],
                         2.0 * Q[0, 1], 2.0 * Q[0, 2], 2.0 * Q[1, 2],
                         2.0 * Q[0, 3], 2.0 * Q[1, 3], 2.0 * Q[2, 3], Q[3, 3]])

    def normalize(self):
        norm = np.linalg.norm(self.descriptor)
        if norm > np.finfo(np.float64).eps:
            self.descriptor = self.descriptor / norm


class Point3D(Model):
    """ 三维点模型，descriptor 为单位范数的齐次坐标 [x, y, z, w] """

    def __init__(self, homogeneous=np.array([0.0, 0.0, 0.0, 1.0])):
        super().__init__()
        self.descriptor = np.array(homogeneous, dtype=np.float64)
        self.normalize()

    @classmethod
    def fromInhomogeneous(cls, point):
        return cls(np.r_[np.asarray(point, dtype=np.float64), 1.0])

    @property
    def inhomogeneous(self):
        return self.descriptor[0:3] / self.descriptor[3]

    def normalize(self):
        norm = np.linalg.norm(self.descriptor)
        if norm > np.finfo(np.float64).eps:
            self.descriptor = self.descriptor / norm


class EuclideanTransformation3D(Model):
    """ 三维欧氏（刚体）变换 q = R p + t，descriptor 为 4x4 齐次矩阵 """

    def __init__(self, rotation=np.eye(3), translation=np.zeros(3)):
        super().__init__()
        self.descriptor = np.eye(4)
        self.descriptor[0:3, 0:3] = rotation
        self.descriptor[0:3, 3] = translation

    @property
    def rotation(self):
        return self.descriptor[0:3, 0:3]

    @property
    def translation(self):
        return self.descriptor[0:3, 3]

    def transform(self, points):
        """ 对 (N,3) 点集进行变换 """
        return np.dot(points, self.rotation.T) + self.translation


class PinholeCamera(Model):
    """ 针孔相机模型，descriptor 为 3x4 投影矩阵 P = K R [I | -C] """

    def __init__(self, matrix=np.c_[np.eye(3), np.zeros(3)]):
        super().__init__()
        self.descriptor = np.array(matrix, dtype=np.float64)
        self.normalize()

    @classmethod
    def fromDecomposition(cls, intrinsic, rotation, center):
        """ 由内参矩阵 K、旋转矩阵 R 和相机中心 C 构建相机 """
        center = np.asarray(center, dtype=np.float64)
        matrix = np.dot(np.dot(intrinsic, rotation), np.c_[np.eye(3), -center])
        return cls(matrix)

    def normalize(self):
        """ 归一化投影矩阵，并使左侧 3x3 子矩阵的行列式为正 """
        norm = np.linalg.norm(self.descriptor)
        if norm > np.finfo(np.float64).eps:
            self.descriptor = self.descriptor / norm
        if np.linalg.det(self.descriptor[:, 0:3]) < 0.0:
            self.descriptor = -self.descriptor

    def project(self, points):
        """ 将 (N,3) 三维点投影为 (N,2) 图像点 """
        homogeneous = np.dot(np.c_[points, np.ones(np.shape(points)[0])], self.descriptor.T)
        return homogeneous[:, 0:2] / homogeneous[:, 2:3]

    def decompose(self):
        """ 分解投影矩阵

        返回
        ----------
        numpy, numpy, numpy
            内参矩阵 K（K[2,2] = 1 且对角线为正），旋转矩阵 R，相机中心 C
        """
        M = self.descriptor[:, 0:3]
        # RQ 分解：对行列翻转后的矩阵进行 QR 分解
        flip = np.flipud(np.eye(3))
        Q, R = np.linalg.qr(np.dot(flip, M).T)
        intrinsic = np.dot(np.dot(flip, R.T), flip)
        rotation = np.dot(flip, Q.T)
        # 令内参矩阵对角线为正
        signs = np.diag(np.sign(np.diag(intrinsic)))
        intrinsic = np.dot(intrinsic, signs)
        rotation = np.dot(signs, rotation)
        center = -np.dot(np.linalg.inv(M), self.descriptor[:, 3])
        return intrinsic / intrinsic[2, 2], rotation, center
