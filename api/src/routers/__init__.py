"""Route groups for the Flashcard API.

- flashcard: sub-application mounted under the flashcard prefix
- health: liveness and Prometheus metrics
- root: prefix redirect and the catch-all home handler
"""
