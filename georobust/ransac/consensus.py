import logging

import numpy as np

from georobust.exceptions import RobustEstimatorError
from georobust.utils.score import Score

from .iteration_controller import IterationController

logger = logging.getLogger(__name__)

# 求解器在退化样本上可能抛出的数值异常
DEGENERATE_SAMPLE_ERRORS = (np.linalg.LinAlgError, ValueError, ZeroDivisionError, FloatingPointError)


class InliersData:
    """ 最佳模型对应的内点数据

    参数
    ----------
    inliers : numpy
        (N,) 内点布尔掩码，未保存时为 None
    residuals : numpy
        (N,) 每个数据点对最佳模型的残差，未保存时为 None
    num_inliers : int
        内点数目
    estimated_threshold : float
        LMedS、PROMedS 中由中值残差估计的内点阈值，其他方法为 None
    """

    def __init__(self, inliers=None, residuals=None, num_inliers=0, estimated_threshold=None):
        self.inliers = inliers
        self.residuals = residuals
        self.num_inliers = num_inliers
        self.estimated_threshold = estimated_threshold


class _Settings:

    def __init__(self):
        self.confidence = 0.99                  # 结果的置信率
        self.max_iteration_number = 5000        # 全局最大迭代次数
        self.min_iteration_number = 1           # 全局最小迭代次数
        self.threshold = 1.0                    # 决定内点和外点的阈值，LMedS 中为停止阈值
        self.progress_delta = 0.05              # 通知进度变化的最小间隔
        self.max_skipped_samples = 1000         # 允许连续退化样本的最大数目
        self.compute_and_keep_inliers = True    # 是否保存最佳模型的内点掩码
        self.compute_and_keep_residuals = True  # 是否保存最佳模型的残差


class _Statistics:

    def __init__(self):
        self.iteration_number = 0               # 执行的迭代次数
        self.skipped_sample_number = 0          # 退化样本数目
        self.best_model_update_number = 0       # 最佳模型更新次数
        self.required_iteration_number = 0      # 最终所需迭代次数
        self.cancelled = False                  # 是否被外部取消


class ConsensusEngine:
    """ 通用的一致性采样主循环

    采样器和评分函数决定具体的算法（RANSAC、LMedS、MSAC、PROSAC、PROMedS），
    估计器提供最小样本求解器与残差函数
    """

    def __init__(self):
        self.settings = _Settings()
        self.statistics = _Statistics()

    def run(self,
            points,
            estimator,
            sampler,
            scoring_function,
            listener=None,
            source=None,
            is_cancelled=None):
        """ 运行一致性采样求解过程

        参数
        ----------
        points : numpy
            输入的数据点集
        estimator : Estimator
            模型的估计器
        sampler : Sampler
            采样器
        scoring_function : RansacScoringFunction
            模型评分函数
        listener : RobustEstimatorListener 可选
            迭代事件监听器
        source : RobustEstimator 可选
            传递给监听器的事件来源
        is_cancelled : callable 可选
            每次迭代结束时调用，返回 True 则终止循环

        返回
        ----------
        Model, InliersData
            求解的最佳模型和对应的内点数据
        """
        self.statistics = _Statistics()
        point_number = np.shape(points)[0]
        sample_size = estimator.sampleSize()
        scoring_function.initialize(self.settings.threshold, point_number, sample_size)

        controller = IterationController(self.settings.confidence,
                                         self.settings.max_iteration_number,
                                         sample_size,
                                         point_number,
                                         min_iterations=self.settings.min_iteration_number)

        # 记录全局的最佳模型，得分，内点集合和残差
        so_far_the_best_model = None
        so_far_the_best_score = Score()
        so_far_the_best_inliers = None
        so_far_the_best_residuals = None

        pool = list(range(point_number))
        consecutive_skipped = 0
        last_notified_progress = 0.0

        while self.statistics.iteration_number < controller.required_iterations:
            self.statistics.iteration_number += 1
            iteration = self.statistics.iteration_number

            models = self.__estimateCandidates(points, estimator, sampler, pool, sample_size)
            if len(models) == 0:
                self.statistics.skipped_sample_number += 1
                consecutive_skipped += 1
                if consecutive_skipped > self.settings.max_skipped_samples:
                    raise RobustEstimatorError("unable to find a non-degenerate sample",
                                               iterations=iteration)
            else:
                consecutive_skipped = 0

            for model in models:
                residuals = self.__computeResiduals(points, model, estimator, iteration)
                score, inliers = scoring_function.getScore(residuals)

                if so_far_the_best_score < score:
                    so_far_the_best_model = model
                    so_far_the_best_score = score
                    so_far_the_best_inliers = inliers
                    so_far_the_best_residuals = residuals
                    self.statistics.best_model_update_number += 1
                    # 更新所需迭代次数
                    controller.update(scoring_function.iterationInlierNumber(score, residuals))
                    logger.debug("第 %d 次迭代找到更好的模型: %r，所需迭代次数 %d",
                                 iteration, score, controller.required_iterations)

            if listener is not None:
                listener.onEstimateNextIteration(source, iteration)
                progress = min(1.0, float(iteration) / controller.required_iterations)
                if progress - last_notified_progress >= self.settings.progress_delta:
                    last_notified_progress = progress
                    listener.onEstimateProgressChange(source, progress)

            if so_far_the_best_model is not None and scoring_function.isStopReached(so_far_the_best_score):
                logger.debug("第 %d 次迭代达到停止阈值", iteration)
                break
            if is_cancelled is not None and is_cancelled():
                self.statistics.cancelled = True
                logger.warning("鲁棒估计在第 %d 次迭代后被取消", iteration)
                break

        self.statistics.required_iteration_number = controller.required_iterations

        if so_far_the_best_model is None:
            raise RobustEstimatorError("unable to find a non-degenerate sample",
                                       iterations=self.statistics.iteration_number)

        inliers_data = InliersData(
            inliers=so_far_the_best_inliers if self.settings.compute_and_keep_inliers else None,
            residuals=so_far_the_best_residuals if self.settings.compute_and_keep_residuals else None,
            num_inliers=so_far_the_best_score.inlier_number,
            estimated_threshold=scoring_function.estimatedThreshold(so_far_the_best_score))

        logger.info("鲁棒估计结束: %d 次迭代（%d 个退化样本），%d / %d 个内点",
                    self.statistics.iteration_number,
                    self.statistics.skipped_sample_number,
                    inliers_data.num_inliers,
                    point_number)
        return so_far_the_best_model, inliers_data

    def __estimateCandidates(self, points, estimator, sampler, pool, sample_size):
        """ 采样并估计候选模型，退化样本返回空列表 """
        sample = sampler.sample(pool, sample_size)
        if len(sample) == 0 or not estimator.isValidSample(points, sample):
            return []
        try:
            models = estimator.estimateModel(points, sample)
        except DEGENERATE_SAMPLE_ERRORS as e:
            logger.debug("退化样本 %s: %s", sample, e)
            return []
        return [model for model in models if estimator.isValidModel(model)]

    def __computeResiduals(self, points, model, estimator, iteration):
        try:
            residuals = np.asarray(estimator.residuals(points, model), dtype=np.float64)
        except (np.linalg.LinAlgError, ValueError, FloatingPointError) as e:
            raise RobustEstimatorError("残差计算失败", iterations=iteration) from e
        # 非有限残差视为无穷大
        return np.where(np.isfinite(residuals), residuals, np.inf)
