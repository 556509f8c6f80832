import math as m
import sys


class IterationController:
    """ 自适应迭代次数控制器

    k = ceil( log(1 - confidence) / log(1 - w^s) )，w 为最佳内点率，s 为最小样本大小。
    所需迭代次数从最大迭代次数开始，只会减小，不会增大

    参数
    ----------
    confidence : float
        至少采样到一个无外点样本的概率
    max_iterations : int
        最大迭代次数
    sample_size : int
        最小样本大小
    point_number : int
        数据点数目
    min_iterations : int 可选
        最小迭代次数
    """

    def __init__(self, confidence, max_iterations, sample_size, point_number, min_iterations=1):
        self.confidence = confidence
        self.max_iterations = max_iterations
        self.min_iterations = min_iterations
        self.sample_size = sample_size
        self.point_number = point_number
        self.required_iterations = max_iterations

    def getIterationNumber(self, inlier_ratio):
        """ 计算给定内点率下期望的迭代次数，结果限制在 [min_iterations, max_iterations] """
        if self.confidence >= 1.0:
            return self.max_iterations
        if self.confidence <= 0.0:
            return self.min_iterations

        # w 不能恰好为 0 或 1
        eps = sys.float_info.epsilon
        w = min(max(inlier_ratio, eps), 1.0 - eps)
        probability = w ** self.sample_size
        if probability < eps:
            return self.max_iterations

        log1 = m.log(1.0 - self.confidence)
        log2 = m.log1p(-probability)
        if log2 >= 0.0:
            return self.max_iterations
        iterations = m.ceil(log1 / log2)
        return int(min(max(iterations, self.min_iterations), self.max_iterations))

    def update(self, inlier_number):
        """ 当最佳内点数目改进时更新所需迭代次数

        参数
        ----------
        inlier_number : int
            当前最佳模型的内点数目

        返回
        ----------
        int
            更新后的所需迭代次数
        """
        inlier_ratio = float(inlier_number) / self.point_number if self.point_number > 0 else 0.0
        self.required_iterations = min(self.required_iterations, self.getIterationNumber(inlier_ratio))
        return self.required_iterations
