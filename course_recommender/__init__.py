"""Course recommender: rank catalog courses for training centre trainees."""

__version__ = "0.1.0"
