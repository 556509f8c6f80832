""" georobust: 几何模型的鲁棒估计（RANSAC、LMedS、MSAC、PROSAC、PROMedS） """

from .exceptions import (GeoRobustError, LockedError, NotReadyError,
                         RobustEstimatorError)
from .model import (Conic, CoordinatesType, EuclideanTransformation3D,
                    PinholeCamera, Point3D, Quadric, Sphere)
from .ransac import (RobustEstimatorListener, RobustEstimatorMethod, create,
                     findConic, findEuclideanTransformation,
                     findPinholeCamera, findPoint3D, findQuadric, findSphere)

__version__ = "0.1.0"
