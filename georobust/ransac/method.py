from enum import Enum


class RobustEstimatorMethod(Enum):
    """ 鲁棒估计算法 """
    RANSAC = "ransac"
    LMEDS = "lmeds"
    MSAC = "msac"
    PROSAC = "prosac"
    PROMEDS = "promeds"
