import numpy as np

from georobust.model import PinholeCamera
from georobust.solver.solver_engine import SolverEngine


class SolverPinholeCameraDLT(SolverEngine):
    """ 直接线性变换（DLT）求解针孔相机投影矩阵 """

    def __init__(self):
        pass

    def returnMultipleModels(self):
        """ 确定是否有可能返回多个模型 """
        return False

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return 6

    def estimateModel(self,
                      data,
                      sample,
                      sample_number,
                      weights=None):
        """ 从给定的 3D-2D 点对应，加权拟合投影矩阵

        参数
        ----------
        data : numpy
            输入的 (N,5) 点对应集合：三维点 [X, Y, Z] 在前三列，图像点 [u, v] 在后两列
        sample : list
            用于估计模型的样本点序号列表
        sample_number : int
            样本点的数目
        weights : numpy 可选
            数据点集中点的对应权重

        返回
        ----------
        list(Model)
            通过样本估计的模型列表，三维点共面等退化情况为空列表
        """
        correspondences, sample_weights = self._selectSample(data, sample, sample_number, weights)

        ''' 1. 归一化 '''
        # 最小二乘模型拟合时，对点坐标进行归一化以实现数值稳定性
        normalized_world, world_transform = self._normalizePoints(correspondences[:, 0:3])
        normalized_image, image_transform = self._normalizePoints(correspondences[:, 3:5])
        if normalized_world is None or normalized_image is None:
            return []

        ''' 2. 求线性解 P' '''
        point_number = np.shape(correspondences)[0]
        world = np.c_[normalized_world, np.ones(point_number)]
        u = normalized_image[:, 0:1]
        v = normalized_image[:, 1:2]
        zeros = np.zeros([point_number, 4])
        coefficients = np.empty([2 * point_number, 12])
        coefficients[0::2] = np.c_[world, zeros, -u * world]
        coefficients[1::2] = np.c_[zeros, world, -v * world]
        coefficients *= np.repeat(sample_weights, 2)[:, np.newaxis]

        solution = self._solveNullSpace(coefficients)
        if solution is None:
            return []

        ''' 3. 解除归一化 '''
        matrix = np.dot(np.dot(np.linalg.inv(image_transform), solution.reshape(3, 4)), world_transform)
        camera = PinholeCamera(matrix)
        # 左侧 3x3 子矩阵奇异时相机中心位于无穷远处
        if abs(np.linalg.det(camera.descriptor[:, 0:3])) < self.RANK_TOLERANCE:
            return []
        return [camera]
