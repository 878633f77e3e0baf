"""p2installer - install OSGi plugins and features into Eclipse dropin trees"""

__version__ = "0.3.0"
