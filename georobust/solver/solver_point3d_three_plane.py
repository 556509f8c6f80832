import numpy as np

from georobust.model import Point3D
from georobust.solver.solver_engine import SolverEngine


class SolverPoint3DThreePlane(SolverEngine):
    """ 三平面求交求解三维点 """

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
        """ 求解样本平面的（最小二乘）交点

        参数
        ----------
        data : numpy
            输入的 (N,4) 平面集合，每行为平面方程 [a, b, c, d]
        sample : list
            用于估计模型的样本平面序号列表
        sample_number : int
            样本平面的数目
        weights : numpy 可选
            各平面的对应权重

        返回
        ----------
        list(Model)
            求得的交点，平面平行或共线相交时为空列表
        """
        planes, sample_weights = self._selectSample(data, sample, sample_number, weights)

        # 平面法向量归一化，使每行代表点到平面的有向距离
        normal_norms = np.linalg.norm(planes[:, 0:3], axis=1)
        if np.any(normal_norms < np.finfo(np.float64).eps):
            return []
        coefficients = planes / normal_norms[:, np.newaxis]
        coefficients *= sample_weights[:, np.newaxis]

        solution = self._solveNullSpace(coefficients)
        # 交点位于无穷远处
        if solution is None or abs(solution[3]) < self.RANK_TOLERANCE:
            return []
        return [Point3D(solution)]
