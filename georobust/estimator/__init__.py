from .estimator import Estimator
from .estimator_conic import EstimatorConic
from .estimator_euclidean_transformation import EstimatorEuclideanTransformation
from .estimator_pinhole_camera import EstimatorPinholeCamera
from .estimator_point3d import EstimatorPoint3D
from .estimator_quadric import EstimatorQuadric
from .estimator_sphere import EstimatorSphere
