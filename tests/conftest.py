import numpy as np
import pytest

from georobust.model import (Conic, EuclideanTransformation3D, PinholeCamera,
                             Point3D, Quadric, Sphere)

# 数据点数目和外点比例
POINT_NUMBER = 600
OUTLIER_RATIO = 0.2


class SyntheticData:
    """ 合成数据：真实模型、数据点、内点掩码和质量分数 """

    def __init__(self, model, points, clean, errors):
        self.model = model
        self.points = points
        self.clean = clean
        # 误差越小质量越高
        self.quality_scores = 1.0 / (1.0 + errors)


def _outlierMask(rng, point_number=POINT_NUMBER, outlier_ratio=OUTLIER_RATIO):
    outliers = np.zeros(point_number, dtype=bool)
    outliers[rng.choice(point_number, int(point_number * outlier_ratio), replace=False)] = True
    return outliers


def makeSphereData(rng, outlier_ratio=OUTLIER_RATIO):
    center = np.array([1.0, -2.0, 3.0])
    radius = 4.0
    directions = rng.normal(size=(POINT_NUMBER, 3))
    directions /= np.linalg.norm(directions, axis=1)[:, np.newaxis]
    points = center + radius * directions

    # 外点沿径向向外偏移 5 到 20，或向内偏移 1 到 3.5
    outliers = _outlierMask(rng, outlier_ratio=outlier_ratio)
    offsets = np.where(rng.random(POINT_NUMBER) < 0.5,
                       rng.uniform(5.0, 20.0, POINT_NUMBER),
                       -rng.uniform(1.0, 3.5, POINT_NUMBER)) * outliers
    points = points + offsets[:, np.newaxis] * directions
    return SyntheticData(Sphere(center=center, radius=radius), points, ~outliers, np.abs(offsets))


def makeConicData(rng):
    # 椭圆 (x-1)^2/9 + (y-2)^2/4 = 1
    angles = rng.uniform(0.0, 2.0 * np.pi, POINT_NUMBER)
    points = np.c_[1.0 + 3.0 * np.cos(angles), 2.0 + 2.0 * np.sin(angles)]
    conic = Conic.fromParameters([1.0 / 9.0, 0.0, 1.0 / 4.0, -2.0 / 9.0, -1.0, 1.0 / 9.0])

    outliers = _outlierMask(rng)
    noise = rng.normal(0.0, 5.0, size=(POINT_NUMBER, 2)) * outliers[:, np.newaxis]
    points = points + noise
    return SyntheticData(conic, points, ~outliers, np.linalg.norm(noise, axis=1))


def makeQuadricData(rng):
    # 椭球 x^2/4 + y^2/9 + z^2 = 1
    directions = rng.normal(size=(POINT_NUMBER, 3))
    directions /= np.linalg.norm(directions, axis=1)[:, np.newaxis]
    points = directions * np.array([2.0, 3.0, 1.0])
    quadric = Quadric.fromParameters([1.0 / 4.0, 1.0 / 9.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, -1.0])

    outliers = _outlierMask(rng)
    noise = rng.normal(0.0, 5.0, size=(POINT_NUMBER, 3)) * outliers[:, np.newaxis]
    points = points + noise
    return SyntheticData(quadric, points, ~outliers, np.linalg.norm(noise, axis=1))


def makePoint3DData(rng):
    point = np.array([2.0, -1.0, 0.5])
    normals = rng.normal(size=(POINT_NUMBER, 3))
    planes = np.c_[normals, -np.dot(normals, point)]

    # 外点平面沿法向平移
    outliers = _outlierMask(rng)
    shifts = rng.uniform(1.0, 10.0, POINT_NUMBER) * outliers
    planes[:, 3] += shifts * np.linalg.norm(normals, axis=1)
    return SyntheticData(Point3D.fromInhomogeneous(point), planes, ~outliers, shifts)


def rotationAboutAxis(axis, angle):
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    K = np.array([[0.0, -axis[2], axis[1]],
                  [axis[2], 0.0, -axis[0]],
                  [-axis[1], axis[0], 0.0]])
    return np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * np.dot(K, K)


def makeEuclideanData(rng):
    transformation = EuclideanTransformation3D(rotation=rotationAboutAxis([1.0, 2.0, -0.5], 0.7),
                                               translation=[3.0, -1.0, 2.0])
    source = rng.uniform(-10.0, 10.0, size=(POINT_NUMBER, 3))
    destination = transformation.transform(source)

    outliers = _outlierMask(rng)
    noise = rng.normal(0.0, 20.0, size=(POINT_NUMBER, 3)) * outliers[:, np.newaxis]
    destination = destination + noise
    return SyntheticData(transformation, np.c_[source, destination], ~outliers,
                         np.linalg.norm(noise, axis=1))


def makeCameraData(rng):
    intrinsic = np.array([[500.0, 0.0, 320.0],
                          [0.0, 480.0, 240.0],
                          [0.0, 0.0, 1.0]])
    camera = PinholeCamera.fromDecomposition(intrinsic,
                                             rotationAboutAxis([0.2, 1.0, 0.1], 0.3),
                                             [0.5, -0.5, -10.0])
    world = rng.uniform(-2.0, 2.0, size=(POINT_NUMBER, 3))
    image = camera.project(world)

    outliers = _outlierMask(rng)
    noise = rng.normal(0.0, 50.0, size=(POINT_NUMBER, 2)) * outliers[:, np.newaxis]
    image = image + noise
    return SyntheticData(camera, np.c_[world, image], ~outliers, np.linalg.norm(noise, axis=1))


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def sphere_data(rng):
    return makeSphereData(rng)


@pytest.fixture
def conic_data(rng):
    return makeConicData(rng)


@pytest.fixture
def quadric_data(rng):
    return makeQuadricData(rng)


@pytest.fixture
def point3d_data(rng):
    return makePoint3DData(rng)


@pytest.fixture
def euclidean_data(rng):
    return makeEuclideanData(rng)


@pytest.fixture
def camera_data(rng):
    return makeCameraData(rng)


@pytest.fixture
def make_sphere_data():
    """ 按外点比例生成球面数据 """
    def make(outlier_ratio, seed=7):
        return makeSphereData(np.random.default_rng(seed), outlier_ratio=outlier_ratio)
    return make


@pytest.fixture
def make_euclidean_data():
    """ 按随机种子生成欧氏变换数据 """
    def make(seed):
        return makeEuclideanData(np.random.default_rng(seed))
    return make
