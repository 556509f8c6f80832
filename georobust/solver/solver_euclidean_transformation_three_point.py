import numpy as np

from georobust.model import EuclideanTransformation3D
from georobust.solver.solver_engine import SolverEngine


class SolverEuclideanTransformationThreePoint(SolverEngine):
    """ 三点对应求解三维欧氏变换（Kabsch 算法） """

    def __init__(self):
        pass

    def returnMultipleModels(self):
        """ 确定是否有可能返回多个模型 """
        return False

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return 3

    def estimateModel(self,
                      data,
                      sample,
                      sample_number,
                      weights=None):
        """ 从给定的点对应，加权拟合旋转和平移

        参数
        ----------
        data : numpy
            输入的 (N,6) 点对应集合：源点在前三列，目标点在后三列
        sample : list
            用于估计模型的样本点序号列表
        sample_number : int
            样本点的数目
        weights : numpy 可选
            数据点集中点的对应权重

        返回
        ----------
        list(Model)
            通过样本估计的模型列表，样本点共线时为空列表
        """
        correspondences, sample_weights = self._selectSample(data, sample, sample_number, weights)
        total_weight = np.sum(sample_weights)
        if total_weight <= 0.0:
            return []
        source = correspondences[:, 0:3]
        destination = correspondences[:, 3:6]

        # 计算加权质点
        mass_point_src = np.dot(sample_weights, source) / total_weight
        mass_point_dst = np.dot(sample_weights, destination) / total_weight
        centered_src = source - mass_point_src
        centered_dst = destination - mass_point_dst

        # 互协方差矩阵 H = sum w (p - p0)(q - q0)^T
        H = np.dot((centered_src * sample_weights[:, np.newaxis]).T, centered_dst)
        U, Sigma, VT = np.linalg.svd(H)
        # 源点共线或重合，旋转不唯一
        if Sigma[0] <= 0.0 or Sigma[1] / Sigma[0] < self.RANK_TOLERANCE:
            return []

        # 强迫 det(R) = 1，排除反射
        d = np.sign(np.linalg.det(np.dot(VT.T, U.T)))
        correction = np.diag([1.0, 1.0, d if d != 0.0 else 1.0])
        rotation = np.dot(np.dot(VT.T, correction), U.T)
        translation = mass_point_dst - np.dot(rotation, mass_point_src)
        return [EuclideanTransformation3D(rotation=rotation, translation=translation)]
