""" 鲁棒估计过程中抛出的异常类型

参数非法统一使用内置的 ValueError，其余错误均继承自 GeoRobustError，
以便调用者只需捕获一种异常即可处理估计器的所有失败情况。
"""


class GeoRobustError(Exception):
    """ georobust 异常基类 """


class LockedError(GeoRobustError):
    """ 估计器正在运行（已锁定）时试图修改其配置或数据 """

    def __init__(self, message="估计器已锁定，估计过程结束前不能修改"):
        super().__init__(message)


class NotReadyError(GeoRobustError):
    """ 估计器尚未准备好（数据不足或质量分数不匹配）时调用 estimate() """

    def __init__(self, message="估计器未准备好，请先提供足够的数据"):
        super().__init__(message)


class RobustEstimatorError(GeoRobustError):
    """ 一致性采样循环未能得到有效模型

    参数
    ----------
    message : str
        失败原因
    iterations : int 可选
        失败前执行的迭代次数
    """

    def __init__(self, message="鲁棒估计失败", iterations=0):
        self.iterations = iterations
        super().__init__(message)
