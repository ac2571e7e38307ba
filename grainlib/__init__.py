"""
grainlib: Grain segmentation and feature analysis for concatenative synthesis.

Modules:
  - grain: Signal, Grain, Feature and FeatureMap data model
  - segmenter: Split a signal into equal-length, down-mixed grains
  - features: Time-domain and spectral descriptors of a grain
  - analysis: Annotate grains with features (batch, parallel over grains)
  - layout: Normalize features and map grains onto a 2-D plane
  - dsp_utils: Down-mixing, padding, windowing, magnitude spectrum
  - io_utils: Audio loading and discovery
"""

__version__ = "0.1.0"
__author__ = "Palette"
