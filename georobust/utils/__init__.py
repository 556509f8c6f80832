from .score import (LMedSScoringFunction, MSACScoringFunction,
                    RansacScoringFunction, Score)
from .uniform_random_generator import UniformRandomGenerator
