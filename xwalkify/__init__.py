"""xwalkify — swap a Cordova Android project's runtime for Crosswalk."""

__version__ = "0.1.0"
