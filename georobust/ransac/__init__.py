from .consensus import ConsensusEngine, InliersData
from .iteration_controller import IterationController
from .listener import RobustEstimatorListener
from .method import RobustEstimatorMethod
from .ransac_api import (create, findConic, findEuclideanTransformation,
                         findPinholeCamera, findPoint3D, findQuadric,
                         findSphere)
from .refinement import RefinementStage
from .robust_estimator import (LMedSRobustEstimator, MSACRobustEstimator,
                               PROMedSRobustEstimator, PROSACRobustEstimator,
                               RANSACRobustEstimator, RobustEstimator)
