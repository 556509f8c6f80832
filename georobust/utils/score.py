import numpy as np


class Score:
    """ 模型评估得分，value 越大表示模型越好 """

    def __init__(self, value=-np.inf, inlier_number=0):
        self.inlier_number = inlier_number   # 内点数目
        self.value = value                   # 得分

    def __lt__(self, v):
        return self.value < v.value

    def __gt__(self, v):
        return self.value > v.value

    def __eq__(self, v):
        return self.value == v.value

    def __repr__(self):
        return "Score(value=%g, inlier_number=%d)" % (self.value, self.inlier_number)


class RansacScoringFunction:
    """ RANSAC 评分：残差不超过阈值的点为内点，得分为内点数目 """

    def __init__(self):
        self.threshold = 0.0
        self.point_number = 0
        self.sample_size = 0

    def initialize(self, threshold, point_number, sample_size):
        """ 初始化评分函数

        参数
        ----------
        threshold : float
            决定内点和外点的阈值，LMedS 中为停止阈值
        point_number : int
            数据点数目
        sample_size : int
            最小样本大小
        """
        self.threshold = threshold
        self.point_number = point_number
        self.sample_size = sample_size

    def getScore(self, residuals):
        """ 由模型对所有数据点的残差求解评估得分

        参数
        ----------
        residuals : numpy
            (N,) 残差数组

        返回
        ----------
        Score, numpy
            当前模型参数的评估得分
            当前模型参数的内点布尔掩码
        """
        inliers = residuals <= self.threshold
        inlier_number = int(np.count_nonzero(inliers))
        return Score(float(inlier_number), inlier_number), inliers

    def iterationInlierNumber(self, score, residuals):
        """ 用于更新所需迭代次数的内点数目 """
        return score.inlier_number

    def inlierThreshold(self, score):
        """ 当前得分下决定内点的阈值 """
        return self.threshold

    def isStopReached(self, score):
        """ 得分是否已达到可以提前终止的程度 """
        return False

    def estimatedThreshold(self, score):
        """ 由得分估计的内点阈值，只有基于中值的评分函数才会估计 """
        return None


class MSACScoringFunction(RansacScoringFunction):
    """ MSAC 评分：截断二次损失 sum(min(r^2, t^2))，损失越小越好 """

    def getScore(self, residuals):
        squared_residuals = residuals ** 2
        squared_threshold = self.threshold ** 2
        inliers = residuals <= self.threshold
        # 得分取负的截断损失，使得分越大越好
        value = -float(np.sum(np.minimum(squared_residuals, squared_threshold)))
        return Score(value, int(np.count_nonzero(inliers))), inliers


class LMedSScoringFunction(RansacScoringFunction):
    """ LMedS 评分：残差平方的中值，越小越好，不需要内点阈值

    内点由鲁棒标准差估计的阈值决定，且不小于停止阈值
    """

    # 高斯噪声下中值与标准差的比例
    STD_CONSTANT = 1.4826
    # 内点阈值相对于估计标准差的倍数
    DEFAULT_INLIER_FACTOR = 1.5

    def __init__(self, inlier_factor=DEFAULT_INLIER_FACTOR):
        super().__init__()
        self.inlier_factor = inlier_factor

    def getScore(self, residuals):
        median = float(np.median(residuals ** 2))
        score = Score(-median, 0)
        inliers = residuals <= self.inlierThreshold(score)
        score.inlier_number = int(np.count_nonzero(inliers))
        return score, inliers

    def inlierThreshold(self, score):
        median = -score.value
        correction = 1.0
        if self.point_number > self.sample_size:
            correction += 5.0 / (self.point_number - self.sample_size)
        standard_deviation = self.STD_CONSTANT * correction * np.sqrt(max(median, 0.0))
        return max(self.inlier_factor * standard_deviation, self.threshold)

    def iterationInlierNumber(self, score, residuals):
        # 至少一半的残差不超过中值，停止阈值内的点可以更多
        within_stop_threshold = int(np.count_nonzero(residuals <= self.threshold))
        return max(self.point_number // 2, within_stop_threshold)

    def isStopReached(self, score):
        # 中值残差不超过停止阈值
        return -score.value <= self.threshold ** 2

    def estimatedThreshold(self, score):
        return self.inlierThreshold(score)
