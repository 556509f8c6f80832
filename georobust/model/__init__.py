from .models import (Conic, CoordinatesType, EuclideanTransformation3D, Model,
                     PinholeCamera, Point3D, Quadric, Sphere)
