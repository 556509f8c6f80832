import numpy as np

from georobust.estimator import (EstimatorConic,
                                 EstimatorEuclideanTransformation,
                                 EstimatorPinholeCamera, EstimatorPoint3D,
                                 EstimatorQuadric, EstimatorSphere)
from georobust.model import CoordinatesType

from .method import RobustEstimatorMethod
from .robust_estimator import (DEFAULT_CONFIDENCE, DEFAULT_MAX_ITERATIONS,
                               DEFAULT_ROBUST_METHOD, LMedSRobustEstimator,
                               MSACRobustEstimator, PROMedSRobustEstimator,
                               PROSACRobustEstimator, RANSACRobustEstimator)

# 算法到鲁棒估计器类的映射
ROBUST_ESTIMATORS = {
    RobustEstimatorMethod.RANSAC: RANSACRobustEstimator,
    RobustEstimatorMethod.LMEDS: LMedSRobustEstimator,
    RobustEstimatorMethod.MSAC: MSACRobustEstimator,
    RobustEstimatorMethod.PROSAC: PROSACRobustEstimator,
    RobustEstimatorMethod.PROMEDS: PROMedSRobustEstimator,
}


def create(estimator, method=DEFAULT_ROBUST_METHOD, points=None, quality_scores=None, listener=None):
    """ 创建指定算法的鲁棒估计器

    参数
    --------
    estimator : Estimator
        模型的估计器，例如 EstimatorSphere()
    method : RobustEstimatorMethod 可选
        鲁棒估计算法，默认为 PROMedS
    points : numpy 可选
        数据点集
    quality_scores : numpy 可选
        数据点的质量分数，RANSAC、LMedS、MSAC 会丢弃
    listener : RobustEstimatorListener 可选
        估计事件监听器

    返回
    --------
    RobustEstimator
        对应算法的鲁棒估计器
    """
    if method not in ROBUST_ESTIMATORS:
        raise ValueError("未知的鲁棒估计算法: %r" % (method,))
    return ROBUST_ESTIMATORS[method](estimator,
                                     points=points,
                                     listener=listener,
                                     quality_scores=quality_scores)


def __find(estimator, points, method, threshold, quality_scores, conf, max_iters, refine):
    """ 运行鲁棒估计并返回模型和内点掩码 """
    robust_estimator = create(estimator, method=method, points=points, quality_scores=quality_scores)
    robust_estimator.confidence = conf
    robust_estimator.max_iterations = max_iters
    robust_estimator.refine_result = refine
    # 阈值对 RANSAC、MSAC、PROSAC 为内点阈值，对 LMedS、PROMedS 为停止阈值
    if threshold is not None:
        if hasattr(robust_estimator, "threshold"):
            robust_estimator.threshold = threshold
        else:
            robust_estimator.stop_threshold = threshold

    model = robust_estimator.estimate()
    mask = robust_estimator.inliers_data.inliers.astype(np.uint8)
    return model, mask


""" 几何模型的一次性拟合函数 """
def findSphere(points, method=DEFAULT_ROBUST_METHOD, threshold=None, quality_scores=None,
               conf=DEFAULT_CONFIDENCE, max_iters=DEFAULT_MAX_ITERATIONS, refine=True):
    """ 由三维点集拟合球面

    参数
    --------
    points : numpy
        (N,3) 点集
    method : RobustEstimatorMethod
        鲁棒估计算法
    threshold : float
        内点阈值（LMedS、PROMedS 为停止阈值），None 时使用估计器的默认值
    quality_scores : numpy
        数据点的质量分数
    conf : float
        置信率
    max_iters : int
        最大迭代次数
    refine : bool
        是否细化结果

    返回
    --------
    Sphere, numpy
        球面模型，标注内点和外点的mask
    """
    return __find(EstimatorSphere(), points, method, threshold, quality_scores, conf, max_iters, refine)


def findConic(points, method=DEFAULT_ROBUST_METHOD, threshold=None, quality_scores=None,
              conf=DEFAULT_CONFIDENCE, max_iters=DEFAULT_MAX_ITERATIONS, refine=True):
    """ 由二维点集拟合圆锥曲线，参数同 findSphere """
    return __find(EstimatorConic(), points, method, threshold, quality_scores, conf, max_iters, refine)


def findQuadric(points, method=DEFAULT_ROBUST_METHOD, threshold=None, quality_scores=None,
                conf=DEFAULT_CONFIDENCE, max_iters=DEFAULT_MAX_ITERATIONS, refine=True):
    """ 由三维点集拟合二次曲面，参数同 findSphere """
    return __find(EstimatorQuadric(), points, method, threshold, quality_scores, conf, max_iters, refine)


def findPoint3D(planes, method=DEFAULT_ROBUST_METHOD, threshold=None, quality_scores=None,
                conf=DEFAULT_CONFIDENCE, max_iters=DEFAULT_MAX_ITERATIONS, refine=True,
                coordinates_type=CoordinatesType.INHOMOGENEOUS_COORDINATES):
    """ 求多个平面的公共交点

    参数
    --------
    planes : numpy
        (N,4) 平面方程 [a, b, c, d]
    coordinates_type : CoordinatesType
        细化时使用的坐标表示

    其余参数同 findSphere

    返回
    --------
    Point3D, numpy
        三维点，标注内点和外点的mask
    """
    estimator = EstimatorPoint3D(coordinates_type=coordinates_type)
    return __find(estimator, planes, method, threshold, quality_scores, conf, max_iters, refine)


def findEuclideanTransformation(src_points, dst_points, method=DEFAULT_ROBUST_METHOD, threshold=None,
                                quality_scores=None, conf=DEFAULT_CONFIDENCE,
                                max_iters=DEFAULT_MAX_ITERATIONS, refine=True):
    """ 由三维点对应求解欧氏变换 dst = R src + t

    参数
    --------
    src_points : numpy
        (N,3) 源点集
    dst_points : numpy
        (N,3) 目标点集

    其余参数同 findSphere

    返回
    --------
    EuclideanTransformation3D, numpy
        欧氏变换，标注内点和外点的mask
    """
    # src 在前三列，dst 在后三列
    points = np.c_[src_points, dst_points]
    return __find(EstimatorEuclideanTransformation(), points, method, threshold, quality_scores,
                  conf, max_iters, refine)


def findPinholeCamera(object_points, image_points, method=DEFAULT_ROBUST_METHOD, threshold=None,
                      quality_scores=None, conf=DEFAULT_CONFIDENCE,
                      max_iters=DEFAULT_MAX_ITERATIONS, refine=True):
    """ 由 3D-2D 点对应求解针孔相机

    参数
    --------
    object_points : numpy
        (N,3) 三维点
    image_points : numpy
        (N,2) 对应的图像点

    其余参数同 findSphere

    返回
    --------
    PinholeCamera, numpy
        针孔相机，标注内点和外点的mask
    """
    points = np.c_[object_points, image_points]
    return __find(EstimatorPinholeCamera(), points, method, threshold, quality_scores,
                  conf, max_iters, refine)
