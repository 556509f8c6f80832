import numpy as np


class Estimator:
    """ 模型估计器基类

    估计器把最小样本求解器、非最小样本求解器、残差函数以及细化时使用的
    模型参数化方式组合在一起，鲁棒估计引擎只通过该接口访问具体的几何模型
    """

    # 估计模型所需的最小样本数
    MINIMUM_SIZE = 0
    # 每个数据点（行）的维度
    DATA_DIMENSION = 0
    # RANSAC、MSAC、PROSAC 默认的内点阈值
    DEFAULT_THRESHOLD = 1.0
    # LMedS、PROMedS 默认的停止阈值
    DEFAULT_STOP_THRESHOLD = 1e-3

    def __init__(self, minimalSolver=None, nonMinimalSolver=None):
        # 用于估计最小样本模型的求解器
        self.minimal_solver = minimalSolver() if minimalSolver is not None else None
        # 用于估计非最小样本模型的求解器
        self.non_minimal_solver = nonMinimalSolver() if nonMinimalSolver is not None else self.minimal_solver

    def sampleSize(self):
        """ 估计模型所需的最小样本的大小 """
        return self.minimal_solver.sampleSize()

    def nonMinimalSampleSize(self):
        """ 估计模型所需的非最小样本的大小 """
        return self.non_minimal_solver.sampleSize()

    def isValidData(self, data):
        """ 检查输入数据集的形状是否为 (N, DATA_DIMENSION) """
        return np.ndim(data) == 2 and np.shape(data)[1] == self.DATA_DIMENSION

    def estimateModel(self, data, sample):
        """ 给定一组数据点，估计最小样本模型

        参数
        ----------
        data : numpy
            输入的数据点集
        sample : list
            用于估计模型的样本点序号列表

        返回
        ----------
        list(Model)
            通过样本估计的模型列表
        """
        return self.minimal_solver.estimateModel(data, sample, self.sampleSize())

    def estimateModelNonminimal(self,
                                data,
                                sample,
                                sample_number,
                                weights=None):
        """ 根据数据点集的非最小采样估计模型
            例如对于球面，在一组点上使用 SVD 求最小二乘解，而不是由四个点直接构造。
            在加权最小二乘的情况下，权重可以输入到函数中

        参数
        ----------
        data : numpy
            输入的数据点集
        sample : list
            用于估计模型的样本点序号列表
        sample_number : int
            样本点数目
        weights : numpy
            数据点集中点的对应权重

        返回
        ----------
        list(Model)
            通过样本估计的模型列表
        """
        if sample_number < self.nonMinimalSampleSize():
            return []
        return self.non_minimal_solver.estimateModel(data, sample, sample_number, weights=weights)

    def residuals(self, data, model):
        """ 给定模型，计算所有数据点的误差，返回 (N,) 数组 """
        raise NotImplementedError

    def refinementResiduals(self, data, model):
        """ 细化时最小化的误差向量，默认与 residuals 相同 """
        return self.residuals(data, model)

    def parameterNumber(self):
        """ 细化时模型参数向量的长度，也是协方差矩阵的维度 """
        raise NotImplementedError

    def modelToParameters(self, model):
        """ 将模型转换为细化所用的参数向量 """
        raise NotImplementedError

    def parametersToModel(self, parameters):
        """ 将参数向量转换回模型 """
        raise NotImplementedError

    def isValidSample(self, data, sample):
        """ 在计算模型参数之前判断所选样本是否退化

        参数
        ----------
        data : numpy
            输入的数据点集
        sample : list
            用于估计模型的样本点序号列表

        返回
        ----------
        bool
            样本是否有效
        """
        return True

    def isValidModel(self,
                     model,
                     data=None,
                     inliers=None,
                     minimal_sample=None,
                     threshold=None):
        """ 检查模型是否有效，可以是模型结构的几何检查或其他验证

        参数
        ----------
        model : Model
            需要检查的模型
        data : numpy
            输入的数据点集
        inliers : numpy
            需要检查的模型的内点
        minimal_sample : list
            样本点序号
        threshold : float
            决定内点和外点的阈值

        返回
        ----------
        bool
            模型是否有效
        """
        return np.all(np.isfinite(model.descriptor))
