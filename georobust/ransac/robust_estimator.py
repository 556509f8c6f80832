import logging
from contextlib import contextmanager

import numpy as np

from georobust.exceptions import LockedError, NotReadyError
from georobust.sampler import ProsacSampler, UniformSampler
from georobust.utils.score import (LMedSScoringFunction, MSACScoringFunction,
                                   RansacScoringFunction)

from .consensus import ConsensusEngine
from .method import RobustEstimatorMethod
from .refinement import RefinementStage

logger = logging.getLogger(__name__)

# 通知进度变化的默认间隔及其范围
DEFAULT_PROGRESS_DELTA = 0.05
MIN_PROGRESS_DELTA = 0.0
MAX_PROGRESS_DELTA = 1.0
# 默认置信率及其范围
DEFAULT_CONFIDENCE = 0.99
MIN_CONFIDENCE = 0.0
MAX_CONFIDENCE = 1.0
# 默认最大迭代次数及最小迭代次数
DEFAULT_MAX_ITERATIONS = 5000
MIN_ITERATIONS = 1
# 细化相关默认值
DEFAULT_REFINE_RESULT = True
DEFAULT_KEEP_COVARIANCE = False
DEFAULT_USE_FAST_REFINEMENT = False
# 默认允许连续退化样本的最大数目
DEFAULT_MAX_SKIPPED_SAMPLES = 1000
# create() 默认使用的算法
DEFAULT_ROBUST_METHOD = RobustEstimatorMethod.PROMEDS


class RobustEstimator:
    """ 鲁棒估计器基类

    估计器在 estimate() 运行期间处于锁定状态，此时任何修改配置或数据的操作
    都会抛出 LockedError。具体的几何模型由 Estimator 策略对象提供，
    具体的算法由子类选择的采样器和评分函数决定

    参数
    ----------
    estimator : Estimator
        模型的估计器
    points : numpy 可选
        (N, DATA_DIMENSION) 数据点集，N 不小于 estimator.MINIMUM_SIZE
    listener : RobustEstimatorListener 可选
        估计事件监听器
    quality_scores : numpy 可选
        每个数据点的质量分数，只有 PROSAC 和 PROMedS 使用
    """

    METHOD = None
    # 是否使用质量分数进行渐进采样
    USES_QUALITY_SCORES = False
    # 评分函数类
    SCORING_FUNCTION = RansacScoringFunction

    def __init__(self, estimator, points=None, listener=None, quality_scores=None):
        self._estimator = estimator
        self._locked = False
        self._cancel_requested = False

        self._listener = None
        self._progress_delta = DEFAULT_PROGRESS_DELTA
        self._confidence = DEFAULT_CONFIDENCE
        self._max_iterations = DEFAULT_MAX_ITERATIONS
        self._points = None
        self._quality_scores = None
        self._refine_result = DEFAULT_REFINE_RESULT
        self._keep_covariance = DEFAULT_KEEP_COVARIANCE
        self._use_fast_refinement = DEFAULT_USE_FAST_REFINEMENT
        self._compute_and_keep_inliers = True
        self._compute_and_keep_residuals = True
        self._propagate_refinement_errors = False
        self._random_seed = None
        self._max_skipped_samples = DEFAULT_MAX_SKIPPED_SAMPLES

        # 最近一次估计的结果
        self._inliers_data = None
        self._covariance = None
        self.statistics = None

        self.points = points
        self.quality_scores = quality_scores
        self.listener = listener

    ''' 状态查询 '''

    def isLocked(self):
        """ 估计器是否正在运行 estimate() """
        return self._locked

    def isReady(self):
        """ 数据点是否足够开始估计 """
        return self._points is not None and np.shape(self._points)[0] >= self._estimator.MINIMUM_SIZE

    def isListenerAvailable(self):
        return self._listener is not None

    def getMethod(self):
        """ 返回估计器使用的 RobustEstimatorMethod """
        return self.METHOD

    def requestCancel(self):
        """ 请求在当前迭代结束后停止估计，可以在监听器回调中调用 """
        self._cancel_requested = True

    @contextmanager
    def _lock(self):
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    def _checkLocked(self):
        if self._locked:
            raise LockedError()

    ''' 配置属性 '''

    @property
    def estimator(self):
        return self._estimator

    @property
    def listener(self):
        return self._listener

    @listener.setter
    def listener(self, listener):
        self._checkLocked()
        self._listener = listener

    @property
    def progress_delta(self):
        return self._progress_delta

    @progress_delta.setter
    def progress_delta(self, progress_delta):
        self._checkLocked()
        if not MIN_PROGRESS_DELTA <= progress_delta <= MAX_PROGRESS_DELTA:
            raise ValueError("progress_delta 必须位于 [%g, %g]" % (MIN_PROGRESS_DELTA, MAX_PROGRESS_DELTA))
        self._progress_delta = progress_delta

    @property
    def confidence(self):
        return self._confidence

    @confidence.setter
    def confidence(self, confidence):
        self._checkLocked()
        if not MIN_CONFIDENCE <= confidence <= MAX_CONFIDENCE:
            raise ValueError("confidence 必须位于 [%g, %g]" % (MIN_CONFIDENCE, MAX_CONFIDENCE))
        self._confidence = confidence

    @property
    def max_iterations(self):
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, max_iterations):
        self._checkLocked()
        if max_iterations < MIN_ITERATIONS:
            raise ValueError("max_iterations 不能小于 %d" % MIN_ITERATIONS)
        self._max_iterations = int(max_iterations)

    @property
    def max_skipped_samples(self):
        """ 连续退化样本数超过该值时估计失败 """
        return self._max_skipped_samples

    @max_skipped_samples.setter
    def max_skipped_samples(self, max_skipped_samples):
        self._checkLocked()
        if not max_skipped_samples >= 0:
            raise ValueError("max_skipped_samples 不能小于 0")
        self._max_skipped_samples = int(max_skipped_samples)

    @property
    def points(self):
        return self._points

    @points.setter
    def points(self, points):
        self._checkLocked()
        if points is not None:
            points = np.asarray(points, dtype=np.float64)
            if not self._estimator.isValidData(points):
                raise ValueError("数据点集的形状应为 (N, %d)" % self._estimator.DATA_DIMENSION)
            if np.shape(points)[0] < self._estimator.MINIMUM_SIZE:
                raise ValueError("至少需要 %d 个数据点" % self._estimator.MINIMUM_SIZE)
        self._points = points

    @property
    def quality_scores(self):
        return self._quality_scores

    @quality_scores.setter
    def quality_scores(self, quality_scores):
        self._checkLocked()
        # 不使用质量分数的算法接受但丢弃
        self._quality_scores = None

    @property
    def refine_result(self):
        return self._refine_result

    @refine_result.setter
    def refine_result(self, refine_result):
        self._checkLocked()
        self._refine_result = bool(refine_result)

    @property
    def keep_covariance(self):
        return self._keep_covariance

    @keep_covariance.setter
    def keep_covariance(self, keep_covariance):
        self._checkLocked()
        self._keep_covariance = bool(keep_covariance)

    @property
    def use_fast_refinement(self):
        return self._use_fast_refinement

    @use_fast_refinement.setter
    def use_fast_refinement(self, use_fast_refinement):
        self._checkLocked()
        self._use_fast_refinement = bool(use_fast_refinement)

    @property
    def compute_and_keep_inliers(self):
        return self._compute_and_keep_inliers

    @compute_and_keep_inliers.setter
    def compute_and_keep_inliers(self, compute_and_keep_inliers):
        self._checkLocked()
        self._compute_and_keep_inliers = bool(compute_and_keep_inliers)

    @property
    def compute_and_keep_residuals(self):
        return self._compute_and_keep_residuals

    @compute_and_keep_residuals.setter
    def compute_and_keep_residuals(self, compute_and_keep_residuals):
        self._checkLocked()
        self._compute_and_keep_residuals = bool(compute_and_keep_residuals)

    @property
    def propagate_refinement_errors(self):
        return self._propagate_refinement_errors

    @propagate_refinement_errors.setter
    def propagate_refinement_errors(self, propagate_refinement_errors):
        self._checkLocked()
        self._propagate_refinement_errors = bool(propagate_refinement_errors)

    @property
    def random_seed(self):
        return self._random_seed

    @random_seed.setter
    def random_seed(self, random_seed):
        self._checkLocked()
        self._random_seed = random_seed

    ''' 估计结果 '''

    @property
    def inliers_data(self):
        """ 最近一次估计的 InliersData，未估计时为 None """
        return self._inliers_data

    @property
    def covariance(self):
        """ 最近一次细化得到的参数协方差，未细化、未要求保存或细化失败时为 None """
        return self._covariance

    ''' 估计 '''

    def estimate(self):
        """ 运行鲁棒估计

        返回
        ----------
        Model
            估计得到的最佳模型（若要求细化，则为细化后的模型）
        """
        self._checkLocked()
        if not self.isReady():
            raise NotReadyError()

        with self._lock():
            self._inliers_data = None
            self._covariance = None
            self._cancel_requested = False

            if self._listener is not None:
                self._listener.onEstimateStart(self)

            ''' 1. 一致性采样 '''
            engine = ConsensusEngine()
            self._configure(engine.settings)
            try:
                model, inliers_data = engine.run(self._points,
                                                 self._estimator,
                                                 self._createSampler(),
                                                 self.SCORING_FUNCTION(),
                                                 listener=self._listener,
                                                 source=self,
                                                 is_cancelled=lambda: self._cancel_requested)
            finally:
                self.statistics = engine.statistics

            ''' 2. 细化 '''
            if self._refine_result:
                refinement = RefinementStage(self._estimator,
                                             keep_covariance=self._keep_covariance,
                                             use_fast_refinement=self._use_fast_refinement,
                                             standard_deviation=self._refinementStandardDeviation(inliers_data),
                                             propagate_errors=self._propagate_refinement_errors)
                model, self._covariance = refinement.refine(self._points, model, inliers_data.inliers)

            if not self._compute_and_keep_inliers:
                inliers_data.inliers = None
            if not self._compute_and_keep_residuals:
                inliers_data.residuals = None
            self._inliers_data = inliers_data

            if self._listener is not None:
                self._listener.onEstimateEnd(self)
            return model

    def _configure(self, settings):
        settings.confidence = self._confidence
        settings.max_iteration_number = self._max_iterations
        settings.min_iteration_number = MIN_ITERATIONS
        settings.progress_delta = self._progress_delta
        settings.max_skipped_samples = self._max_skipped_samples
        # 细化需要内点和残差
        settings.compute_and_keep_inliers = self._compute_and_keep_inliers or self._refine_result
        settings.compute_and_keep_residuals = self._compute_and_keep_residuals or self._refine_result

    def _createSampler(self):
        return UniformSampler(self._points, seed=self._random_seed)

    def _refinementStandardDeviation(self, inliers_data):
        raise NotImplementedError


class _ThresholdRobustEstimator(RobustEstimator):
    """ 使用固定内点阈值的估计器（RANSAC、MSAC、PROSAC） """

    def __init__(self, estimator, points=None, listener=None, quality_scores=None):
        self._threshold = estimator.DEFAULT_THRESHOLD
        super().__init__(estimator, points=points, listener=listener, quality_scores=quality_scores)

    @property
    def threshold(self):
        """ 决定内点和外点的阈值 """
        return self._threshold

    @threshold.setter
    def threshold(self, threshold):
        self._checkLocked()
        if not threshold > 0.0:
            raise ValueError("threshold 必须大于 0")
        self._threshold = threshold

    def _configure(self, settings):
        super()._configure(settings)
        settings.threshold = self._threshold

    def _refinementStandardDeviation(self, inliers_data):
        return self._threshold


class _StopThresholdRobustEstimator(RobustEstimator):
    """ 基于中值残差的估计器（LMedS、PROMedS） """

    SCORING_FUNCTION = LMedSScoringFunction

    def __init__(self, estimator, points=None, listener=None, quality_scores=None):
        self._stop_threshold = estimator.DEFAULT_STOP_THRESHOLD
        super().__init__(estimator, points=points, listener=listener, quality_scores=quality_scores)

    @property
    def stop_threshold(self):
        """ 中值残差不超过该值时提前终止，同时是内点阈值的下限 """
        return self._stop_threshold

    @stop_threshold.setter
    def stop_threshold(self, stop_threshold):
        self._checkLocked()
        if not stop_threshold > 0.0:
            raise ValueError("stop_threshold 必须大于 0")
        self._stop_threshold = stop_threshold

    def _configure(self, settings):
        super()._configure(settings)
        settings.threshold = self._stop_threshold

    def _refinementStandardDeviation(self, inliers_data):
        return inliers_data.estimated_threshold


class _ProgressiveMixin:
    """ 使用质量分数进行 PROSAC 渐进采样 """

    USES_QUALITY_SCORES = True

    @property
    def quality_scores(self):
        return self._quality_scores

    @quality_scores.setter
    def quality_scores(self, quality_scores):
        self._checkLocked()
        if quality_scores is not None:
            quality_scores = np.asarray(quality_scores, dtype=np.float64)
            if np.ndim(quality_scores) != 1 or len(quality_scores) < self._estimator.MINIMUM_SIZE:
                raise ValueError("至少需要 %d 个质量分数" % self._estimator.MINIMUM_SIZE)
            if self._points is not None and len(quality_scores) != np.shape(self._points)[0]:
                raise ValueError("质量分数数目与数据点数目不一致")
        self._quality_scores = quality_scores

    def isReady(self):
        if not super().isReady():
            return False
        return self._quality_scores is None or len(self._quality_scores) == np.shape(self._points)[0]

    def _createSampler(self):
        if self._quality_scores is None:
            logger.warning("%s 没有质量分数，使用均匀采样", self.METHOD.name)
            return UniformSampler(self._points, seed=self._random_seed)
        return ProsacSampler(self._points,
                             self._estimator.sampleSize(),
                             self._quality_scores,
                             ransac_convergence_iterations=self._max_iterations,
                             seed=self._random_seed)


class RANSACRobustEstimator(_ThresholdRobustEstimator):
    """ RANSAC：内点数目最多的模型最好 """

    METHOD = RobustEstimatorMethod.RANSAC


class MSACRobustEstimator(_ThresholdRobustEstimator):
    """ MSAC：截断二次损失最小的模型最好 """

    METHOD = RobustEstimatorMethod.MSAC
    SCORING_FUNCTION = MSACScoringFunction


class PROSACRobustEstimator(_ProgressiveMixin, _ThresholdRobustEstimator):
    """ PROSAC：按质量分数渐进采样，RANSAC 评分 """

    METHOD = RobustEstimatorMethod.PROSAC


class LMedSRobustEstimator(_StopThresholdRobustEstimator):
    """ LMedS：残差平方中值最小的模型最好 """

    METHOD = RobustEstimatorMethod.LMEDS


class PROMedSRobustEstimator(_ProgressiveMixin, _StopThresholdRobustEstimator):
    """ PROMedS：按质量分数渐进采样，LMedS 评分 """

    METHOD = RobustEstimatorMethod.PROMEDS
