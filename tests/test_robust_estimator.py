import numpy as np
import pytest
from scipy.optimize import approx_fprime

from georobust import (LockedError, NotReadyError, RobustEstimatorError,
                       RobustEstimatorListener, RobustEstimatorMethod, create)
from georobust.estimator import EstimatorConic, EstimatorSphere
from georobust.model import Sphere
from georobust.ransac import (LMedSRobustEstimator, MSACRobustEstimator,
                              PROMedSRobustEstimator, PROSACRobustEstimator,
                              RANSACRobustEstimator, RefinementStage)
from georobust.ransac import robust_estimator as re

METHOD_CLASSES = {
    RobustEstimatorMethod.RANSAC: RANSACRobustEstimator,
    RobustEstimatorMethod.LMEDS: LMedSRobustEstimator,
    RobustEstimatorMethod.MSAC: MSACRobustEstimator,
    RobustEstimatorMethod.PROSAC: PROSACRobustEstimator,
    RobustEstimatorMethod.PROMEDS: PROMedSRobustEstimator,
}
PROGRESSIVE_METHODS = [RobustEstimatorMethod.PROSAC, RobustEstimatorMethod.PROMEDS]
NON_PROGRESSIVE_METHODS = [RobustEstimatorMethod.RANSAC, RobustEstimatorMethod.LMEDS,
                           RobustEstimatorMethod.MSAC]
THRESHOLD_METHODS = [RobustEstimatorMethod.RANSAC, RobustEstimatorMethod.MSAC,
                     RobustEstimatorMethod.PROSAC]
MEDIAN_METHODS = [RobustEstimatorMethod.LMEDS, RobustEstimatorMethod.PROMEDS]


class _LockCheckingListener(RobustEstimatorListener):
    """ 在每个回调中检查估计器已锁定且所有修改操作都会失败 """

    def __init__(self):
        self.events = []
        self.failures = []

    def _check(self, estimator):
        if not estimator.isLocked():
            self.failures.append("not locked")
        setters = {
            "listener": None,
            "progress_delta": 0.5,
            "confidence": 0.5,
            "max_iterations": 10,
            "points": estimator.points,
            "quality_scores": None,
            "refine_result": False,
            "keep_covariance": True,
            "use_fast_refinement": True,
            "compute_and_keep_inliers": False,
            "compute_and_keep_residuals": False,
            "propagate_refinement_errors": True,
            "random_seed": 1,
            "max_skipped_samples": 10,
        }
        if hasattr(estimator, "threshold"):
            setters["threshold"] = 0.5
        else:
            setters["stop_threshold"] = 0.5
        for name, value in setters.items():
            try:
                setattr(estimator, name, value)
            except LockedError:
                continue
            self.failures.append(name)
        try:
            estimator.estimate()
        except LockedError:
            pass
        else:
            self.failures.append("estimate")
        # 只读属性可以访问
        estimator.confidence
        estimator.points

    def onEstimateStart(self, estimator):
        self.events.append("start")
        self._check(estimator)

    def onEstimateEnd(self, estimator):
        self.events.append("end")
        self._check(estimator)

    def onEstimateNextIteration(self, estimator, iteration):
        self.events.append(("iteration", iteration))
        self._check(estimator)

    def onEstimateProgressChange(self, estimator, progress):
        self.events.append(("progress", progress))
        self._check(estimator)


class _RecordingListener(RobustEstimatorListener):

    def __init__(self, cancel_at=None):
        self.iterations = []
        self.progress = []
        self.cancel_at = cancel_at

    def onEstimateNextIteration(self, estimator, iteration):
        self.iterations.append(iteration)
        if iteration == self.cancel_at:
            estimator.requestCancel()

    def onEstimateProgressChange(self, estimator, progress):
        self.progress.append(progress)


class TestDefaults:
    """ 默认配置 """

    @pytest.mark.parametrize("method", list(RobustEstimatorMethod))
    def test_defaults(self, method):
        estimator = create(EstimatorSphere(), method=method)
        assert type(estimator) is METHOD_CLASSES[method]
        assert estimator.getMethod() == method
        assert estimator.progress_delta == re.DEFAULT_PROGRESS_DELTA == 0.05
        assert estimator.confidence == re.DEFAULT_CONFIDENCE == 0.99
        assert estimator.max_iterations == re.DEFAULT_MAX_ITERATIONS == 5000
        assert estimator.refine_result is True
        assert estimator.keep_covariance is False
        assert estimator.use_fast_refinement is False
        assert estimator.compute_and_keep_inliers is True
        assert estimator.compute_and_keep_residuals is True
        assert estimator.listener is None
        assert not estimator.isListenerAvailable()
        assert estimator.points is None
        assert estimator.quality_scores is None
        assert estimator.inliers_data is None
        assert estimator.covariance is None
        assert not estimator.isLocked()
        assert not estimator.isReady()

    def test_default_method_is_promeds(self):
        assert type(create(EstimatorSphere())) is PROMedSRobustEstimator

    @pytest.mark.parametrize("method", THRESHOLD_METHODS)
    def test_default_threshold(self, method):
        """ 默认阈值来自模型估计器 """
        estimator = create(EstimatorSphere(), method=method)
        assert estimator.threshold == EstimatorSphere.DEFAULT_THRESHOLD
        assert not hasattr(estimator, "stop_threshold")

    @pytest.mark.parametrize("method", MEDIAN_METHODS)
    def test_default_stop_threshold(self, method):
        estimator = create(EstimatorSphere(), method=method)
        assert estimator.stop_threshold == EstimatorSphere.DEFAULT_STOP_THRESHOLD
        assert not hasattr(estimator, "threshold")

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            create(EstimatorSphere(), method="ransac")


class TestValidation:
    """ 参数检查：非法值抛出 ValueError 且保留原值 """

    @pytest.mark.parametrize("value", [-0.1, 1.1])
    def test_progress_delta(self, value):
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC)
        with pytest.raises(ValueError):
            estimator.progress_delta = value
        assert estimator.progress_delta == 0.05
        estimator.progress_delta = 0.0
        estimator.progress_delta = 1.0

    @pytest.mark.parametrize("value", [-0.1, 1.1])
    def test_confidence(self, value):
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.MSAC)
        with pytest.raises(ValueError):
            estimator.confidence = value
        assert estimator.confidence == 0.99

    def test_max_iterations(self):
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.LMEDS)
        with pytest.raises(ValueError):
            estimator.max_iterations = 0
        assert estimator.max_iterations == 5000
        estimator.max_iterations = 1
        assert estimator.max_iterations == 1

    def test_max_skipped_samples(self):
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC)
        assert estimator.max_skipped_samples == re.DEFAULT_MAX_SKIPPED_SAMPLES == 1000
        with pytest.raises(ValueError):
            estimator.max_skipped_samples = -1
        assert estimator.max_skipped_samples == 1000
        estimator.max_skipped_samples = 0
        assert estimator.max_skipped_samples == 0

    @pytest.mark.parametrize("method", THRESHOLD_METHODS)
    def test_threshold(self, method):
        estimator = create(EstimatorSphere(), method=method)
        for value in (0.0, -1.0, float("nan")):
            with pytest.raises(ValueError):
                estimator.threshold = value
        assert estimator.threshold == EstimatorSphere.DEFAULT_THRESHOLD
        estimator.threshold = 0.5
        assert estimator.threshold == 0.5

    @pytest.mark.parametrize("method", MEDIAN_METHODS)
    def test_stop_threshold(self, method):
        estimator = create(EstimatorSphere(), method=method)
        for value in (0.0, float("nan")):
            with pytest.raises(ValueError):
                estimator.stop_threshold = value
        assert estimator.stop_threshold == EstimatorSphere.DEFAULT_STOP_THRESHOLD
        estimator.stop_threshold = 0.5
        assert estimator.stop_threshold == 0.5

    @pytest.mark.parametrize("method", list(RobustEstimatorMethod))
    def test_too_few_points(self, method):
        """ 数据点少于最小样本数时构造失败 """
        with pytest.raises(ValueError):
            create(EstimatorSphere(), method=method, points=np.zeros((3, 3)))
        estimator = create(EstimatorSphere(), method=method)
        with pytest.raises(ValueError):
            estimator.points = np.zeros((3, 3))
        assert estimator.points is None

    def test_wrong_point_dimension(self):
        with pytest.raises(ValueError):
            create(EstimatorSphere(), points=np.zeros((10, 2)))

    @pytest.mark.parametrize("method", list(RobustEstimatorMethod))
    def test_ready(self, method):
        """ 数据点足够时准备就绪 """
        estimator = create(EstimatorSphere(), method=method, points=np.zeros((4, 3)))
        assert estimator.isReady()
        estimator.points = None
        assert not estimator.isReady()

    def test_not_ready(self):
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC)
        with pytest.raises(NotReadyError):
            estimator.estimate()
        assert not estimator.isLocked()


class TestQualityScores:
    """ 质量分数只被 PROSAC 和 PROMedS 使用 """

    @pytest.mark.parametrize("method", NON_PROGRESSIVE_METHODS)
    def test_dropped_by_non_progressive_methods(self, method):
        estimator = create(EstimatorSphere(), method=method,
                           points=np.zeros((10, 3)), quality_scores=np.ones(10))
        assert estimator.quality_scores is None
        # 长度不一致的质量分数同样被接受并丢弃
        estimator.quality_scores = np.ones(2)
        assert estimator.quality_scores is None

    @pytest.mark.parametrize("method", PROGRESSIVE_METHODS)
    def test_kept_by_progressive_methods(self, method):
        estimator = create(EstimatorSphere(), method=method,
                           points=np.zeros((10, 3)), quality_scores=np.arange(10))
        assert np.array_equal(estimator.quality_scores, np.arange(10))
        assert estimator.isReady()

    @pytest.mark.parametrize("method", PROGRESSIVE_METHODS)
    def test_too_few_scores(self, method):
        with pytest.raises(ValueError):
            create(EstimatorSphere(), method=method, quality_scores=np.ones(3))

    @pytest.mark.parametrize("method", PROGRESSIVE_METHODS)
    def test_length_mismatch(self, method):
        with pytest.raises(ValueError):
            create(EstimatorSphere(), method=method,
                   points=np.zeros((10, 3)), quality_scores=np.ones(9))
        estimator = create(EstimatorSphere(), method=method, points=np.zeros((10, 3)))
        with pytest.raises(ValueError):
            estimator.quality_scores = np.ones(9)
        assert estimator.quality_scores is None

    @pytest.mark.parametrize("method", PROGRESSIVE_METHODS)
    def test_ready_requires_matching_length(self, method):
        """ 先设置质量分数再设置不同数目的数据点时未准备就绪 """
        estimator = create(EstimatorSphere(), method=method, quality_scores=np.ones(8))
        estimator.points = np.zeros((10, 3))
        assert not estimator.isReady()
        with pytest.raises(NotReadyError):
            estimator.estimate()
        estimator.quality_scores = np.ones(10)
        assert estimator.isReady()

    @pytest.mark.parametrize("method", PROGRESSIVE_METHODS)
    def test_without_scores_samples_uniformly(self, method, sphere_data):
        """ 没有质量分数时仍然可以估计 """
        estimator = create(EstimatorSphere(), method=method, points=sphere_data.points)
        estimator.random_seed = 0
        sphere = estimator.estimate()
        assert np.allclose(sphere.center, sphere_data.model.center, atol=1e-6)


class TestLocking:
    """ 估计期间的锁定 """

    @pytest.mark.parametrize("method", list(RobustEstimatorMethod))
    def test_locked_inside_callbacks(self, method, sphere_data):
        listener = _LockCheckingListener()
        estimator = create(EstimatorSphere(), method=method, points=sphere_data.points,
                           quality_scores=sphere_data.quality_scores, listener=listener)
        estimator.random_seed = 0
        assert estimator.isListenerAvailable()
        assert not estimator.isLocked()
        estimator.estimate()
        assert not estimator.isLocked()

        assert listener.failures == []
        assert listener.events[0] == "start"
        assert listener.events[-1] == "end"
        iterations = [event[1] for event in listener.events if event[0] == "iteration"]
        assert iterations == list(range(1, len(iterations) + 1))
        assert len(iterations) == estimator.statistics.iteration_number

    def test_setters_work_after_estimate(self, sphere_data):
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC,
                           points=sphere_data.points)
        estimator.estimate()
        estimator.confidence = 0.95
        estimator.threshold = 1e-6
        estimator.points = sphere_data.points[0:100]
        assert estimator.confidence == 0.95

    def test_unlocked_after_failure(self):
        """ 估计失败后解除锁定，可以修改配置后重试 """
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC,
                           points=np.ones((20, 3)))
        estimator.max_iterations = 10
        with pytest.raises(RobustEstimatorError):
            estimator.estimate()
        assert not estimator.isLocked()
        estimator.max_iterations = 20
        assert estimator.max_iterations == 20


class TestEstimation:
    """ 估计过程的控制 """

    def test_degenerate_samples_exhaust_skip_limit(self):
        """ 连续退化样本超过上限时失败 """
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.MSAC,
                           points=np.ones((20, 3)))
        estimator.max_skipped_samples = 5
        with pytest.raises(RobustEstimatorError, match="non-degenerate") as info:
            estimator.estimate()
        assert info.value.iterations == 6
        assert estimator.inliers_data is None

    def test_iteration_and_progress_notifications(self, sphere_data):
        listener = _RecordingListener()
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC,
                           points=sphere_data.points, listener=listener)
        estimator.random_seed = 0
        estimator.progress_delta = 0.1
        estimator.estimate()
        assert listener.iterations == list(range(1, estimator.statistics.iteration_number + 1))
        assert listener.progress == sorted(listener.progress)
        assert all(0.0 < progress <= 1.0 for progress in listener.progress)
        assert all(b - a >= 0.1 - 1e-12 for a, b in zip(listener.progress, listener.progress[1:]))

    def test_cancel(self, make_sphere_data):
        """ 请求取消后在当前迭代结束时停止 """
        data = make_sphere_data(0.5)
        listener = _RecordingListener(cancel_at=3)
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC,
                           points=data.points, listener=listener)
        estimator.random_seed = 0
        estimator.refine_result = False
        estimator.estimate()
        assert listener.iterations == [1, 2, 3]
        assert estimator.statistics.cancelled
        assert estimator.inliers_data is not None

        # 下一次估计时取消标志被清除
        listener.cancel_at = None
        listener.iterations = []
        estimator.estimate()
        assert len(listener.iterations) > 3
        assert not estimator.statistics.cancelled

    def test_random_seed_is_deterministic(self, sphere_data):
        results = []
        for _ in range(2):
            estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.RANSAC,
                               points=sphere_data.points)
            estimator.random_seed = 11
            estimator.refine_result = False
            estimator.estimate()
            results.append(estimator.statistics.iteration_number)
        assert results[0] == results[1]

    def test_compute_and_keep_flags(self, sphere_data):
        estimator = create(EstimatorSphere(), method=RobustEstimatorMethod.MSAC,
                           points=sphere_data.points)
        estimator.compute_and_keep_inliers = False
        estimator.compute_and_keep_residuals = False
        estimator.estimate()
        assert estimator.inliers_data.inliers is None
        assert estimator.inliers_data.residuals is None
        assert estimator.inliers_data.num_inliers == np.count_nonzero(sphere_data.clean)

        estimator.compute_and_keep_inliers = True
        estimator.compute_and_keep_residuals = True
        estimator.estimate()
        assert np.array_equal(estimator.inliers_data.inliers, sphere_data.clean)
        assert estimator.inliers_data.residuals.shape == (len(sphere_data.points),)

    @pytest.mark.parametrize("method", MEDIAN_METHODS)
    def test_estimated_threshold(self, method, sphere_data):
        """ LMedS 和 PROMedS 记录估计的内点阈值 """
        estimator = create(EstimatorSphere(), method=method, points=sphere_data.points,
                           quality_scores=sphere_data.quality_scores)
        estimator.estimate()
        assert estimator.inliers_data.estimated_threshold >= estimator.stop_threshold

    @pytest.mark.parametrize("method", THRESHOLD_METHODS)
    def test_no_estimated_threshold(self, method, sphere_data):
        estimator = create(EstimatorSphere(), method=method, points=sphere_data.points,
                           quality_scores=sphere_data.quality_scores)
        estimator.estimate()
        assert estimator.inliers_data.estimated_threshold is None


class _BrokenParametrizationSphere(EstimatorSphere):
    """ 无法参数化的球面估计器，细化必然失败 """

    def modelToParameters(self, model):
        raise ValueError("no parametrization")


class TestRefinementFailure:
    """ 细化失败时的处理 """

    def test_falls_back_to_unrefined_model(self, sphere_data):
        estimator = create(_BrokenParametrizationSphere(), method=RobustEstimatorMethod.RANSAC,
                           points=sphere_data.points)
        estimator.keep_covariance = True
        sphere = estimator.estimate()
        assert estimator.covariance is None
        assert np.allclose(sphere.center, sphere_data.model.center, atol=1e-6)

    def test_propagates_when_requested(self, sphere_data):
        estimator = create(_BrokenParametrizationSphere(), method=RobustEstimatorMethod.RANSAC,
                           points=sphere_data.points)
        estimator.propagate_refinement_errors = True
        with pytest.raises(RobustEstimatorError) as info:
            estimator.estimate()
        assert isinstance(info.value.__cause__, ValueError)
        assert not estimator.isLocked()


class _RejectingSphere(EstimatorSphere):
    """ 只接受给定模型的球面估计器，细化结果总被拒绝 """

    def __init__(self, accepted):
        super().__init__()
        self.accepted = accepted

    def isValidModel(self, model, data=None, inliers=None, minimal_sample=None, threshold=None):
        return model is self.accepted


class _WrongParameterNumberSphere(EstimatorSphere):
    """ 参数向量长度与 parameterNumber 不一致 """

    def parameterNumber(self):
        return 5


class TestRefinementStage:
    """ 细化阶段的协方差和参数检查 """

    def test_covariance_of_kept_initial_model(self, sphere_data):
        """ 细化结果被拒绝时，协方差在返回的初始模型处计算 """
        initial = Sphere(center=sphere_data.model.center + 0.05, radius=sphere_data.model.radius)
        estimator = _RejectingSphere(initial)
        stage = RefinementStage(estimator, keep_covariance=True, standard_deviation=0.1,
                                propagate_errors=True)
        sphere, covariance = stage.refine(sphere_data.points, initial, sphere_data.clean)
        assert sphere is initial

        inlier_points = sphere_data.points[sphere_data.clean]

        def residuals(parameters):
            return estimator.refinementResiduals(inlier_points, estimator.parametersToModel(parameters))

        jacobian = approx_fprime(np.asarray(estimator.modelToParameters(initial), dtype=np.float64), residuals)
        expected = np.linalg.pinv(jacobian.T @ jacobian) * 0.1 ** 2
        assert covariance.shape == (estimator.parameterNumber(), estimator.parameterNumber())
        assert np.allclose(covariance, expected, rtol=1e-5, atol=1e-12)

    def test_parameter_number_mismatch(self, sphere_data):
        """ 参数向量长度错误时细化失败 """
        stage = RefinementStage(_WrongParameterNumberSphere(), keep_covariance=True)
        sphere, covariance = stage.refine(sphere_data.points, sphere_data.model, sphere_data.clean)
        assert sphere is sphere_data.model
        assert covariance is None

        stage.propagate_errors = True
        with pytest.raises(RobustEstimatorError) as info:
            stage.refine(sphere_data.points, sphere_data.model, sphere_data.clean)
        assert isinstance(info.value.__cause__, ValueError)


class TestOtherPrimitive:
    """ 状态机与具体几何模型无关 """

    def test_conic_minimum_size(self):
        with pytest.raises(ValueError):
            create(EstimatorConic(), method=RobustEstimatorMethod.PROSAC, points=np.zeros((4, 2)))
        assert create(EstimatorConic(), points=np.zeros((5, 2))).isReady()
