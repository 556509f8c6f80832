from .prosac_sampler import ProsacSampler
from .sampler import Sampler
from .uniform_sampler import UniformSampler
