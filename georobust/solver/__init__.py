from .solver_engine import SolverEngine
from .solver_conic_five_point import SolverConicFivePoint
from .solver_euclidean_transformation_three_point import SolverEuclideanTransformationThreePoint
from .solver_pinhole_camera_dlt import SolverPinholeCameraDLT
from .solver_point3d_three_plane import SolverPoint3DThreePlane
from .solver_quadric_nine_point import SolverQuadricNinePoint
from .solver_sphere_four_point import SolverSphereFourPoint
