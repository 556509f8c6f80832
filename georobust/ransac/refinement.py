import logging

import numpy as np
from scipy.optimize import approx_fprime, least_squares

from georobust.exceptions import RobustEstimatorError

logger = logging.getLogger(__name__)

# 细化过程中可能出现的数值异常
REFINEMENT_ERRORS = (np.linalg.LinAlgError, ValueError, ZeroDivisionError, FloatingPointError)


class RefinementStage:
    """ 使用内点对最佳模型进行非线性细化（Levenberg-Marquardt），并可保存参数的协方差

    参数
    ----------
    estimator : Estimator
        模型的估计器，提供细化残差和模型参数化
    keep_covariance : bool
        是否计算并保存参数协方差矩阵
    use_fast_refinement : bool
        是否使用较宽松的收敛条件和较小的函数求值次数
    standard_deviation : float
        残差的标准差，用于缩放协方差
    propagate_errors : bool 可选
        细化失败时抛出异常，而不是返回未细化的模型
    """

    # 标准细化的收敛容差
    TOLERANCE = 1e-12
    # 快速细化的收敛容差
    FAST_TOLERANCE = 1e-6
    # 快速细化时每个参数允许的函数求值次数
    FAST_EVALUATIONS_PER_PARAMETER = 20

    def __init__(self,
                 estimator,
                 keep_covariance=False,
                 use_fast_refinement=False,
                 standard_deviation=1.0,
                 propagate_errors=False):
        self.estimator = estimator
        self.keep_covariance = keep_covariance
        self.use_fast_refinement = use_fast_refinement
        self.standard_deviation = standard_deviation
        self.propagate_errors = propagate_errors

    def refine(self, points, model, inliers):
        """ 细化模型

        参数
        ----------
        points : numpy
            输入的数据点集
        model : Model
            一致性采样得到的最佳模型
        inliers : numpy
            最佳模型的内点布尔掩码

        返回
        ----------
        Model, numpy
            细化后的模型（细化没有改进时为原模型）
            协方差矩阵，不需要保存或细化失败时为 None
        """
        try:
            return self.__refine(points[inliers], model)
        except REFINEMENT_ERRORS as e:
            if self.propagate_errors:
                raise RobustEstimatorError("模型细化失败") from e
            logger.debug("模型细化失败，使用未细化的模型: %s", e)
            return model, None

    def __refine(self, inlier_points, model):
        ''' 1. 以线性非最小样本解作为初始值 '''
        initial_model, initial_cost = model, self.__cost(inlier_points, model)
        inlier_number = np.shape(inlier_points)[0]
        if inlier_number >= self.estimator.nonMinimalSampleSize():
            for candidate in self.estimator.estimateModelNonminimal(inlier_points,
                                                                    list(range(inlier_number)),
                                                                    inlier_number):
                cost = self.__cost(inlier_points, candidate)
                if self.estimator.isValidModel(candidate) and cost < initial_cost:
                    initial_model, initial_cost = candidate, cost

        ''' 2. 非线性最小二乘 '''
        x0 = np.asarray(self.estimator.modelToParameters(initial_model), dtype=np.float64)
        if np.size(x0) != self.estimator.parameterNumber():
            raise ValueError("模型参数向量长度为 %d，应为 %d" % (np.size(x0), self.estimator.parameterNumber()))

        def residuals(parameters):
            model = self.estimator.parametersToModel(parameters)
            return self.estimator.refinementResiduals(inlier_points, model)

        residual_number = np.size(residuals(x0))
        # lm 要求残差数目不小于参数数目
        method = 'lm' if residual_number >= np.size(x0) else 'trf'
        if self.use_fast_refinement:
            tolerance = self.FAST_TOLERANCE
            max_nfev = self.FAST_EVALUATIONS_PER_PARAMETER * (np.size(x0) + 1)
        else:
            tolerance = self.TOLERANCE
            max_nfev = None
        result = least_squares(residuals, x0, method=method,
                               ftol=tolerance, xtol=tolerance, gtol=tolerance,
                               max_nfev=max_nfev)

        if result.status < 0 or not np.all(np.isfinite(result.x)):
            raise ValueError("least_squares 未收敛: %s" % result.message)

        ''' 3. 只保留使代价减小的结果 '''
        refined_model = self.estimator.parametersToModel(result.x)
        refined_cost = self.__cost(inlier_points, refined_model)
        if self.estimator.isValidModel(refined_model) and refined_cost < initial_cost:
            logger.debug("模型细化: 代价 %g -> %g (%d 次求值)", initial_cost, refined_cost, result.nfev)
            best_model, jacobian = refined_model, result.jac
        else:
            logger.debug("模型细化没有减小代价 (%g)，保留初始模型", initial_cost)
            best_model, jacobian = initial_model, None

        ''' 4. 协方差 '''
        covariance = None
        if self.keep_covariance:
            # 雅可比矩阵在返回模型的参数处求值，result.jac 对应的是 result.x
            if jacobian is None:
                jacobian = approx_fprime(x0, residuals)
            jacobian = np.atleast_2d(jacobian)
            covariance = np.linalg.pinv(jacobian.T @ jacobian) * self.standard_deviation ** 2
            if not np.all(np.isfinite(covariance)):
                raise ValueError("协方差矩阵包含非有限值")
        return best_model, covariance

    def __cost(self, inlier_points, model):
        residuals = self.estimator.refinementResiduals(inlier_points, model)
        return float(np.sum(residuals ** 2))
