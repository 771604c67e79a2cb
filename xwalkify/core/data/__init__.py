"""
Static data — channel tables and the fixed Cordova project layout.

Pure data. No logic. Everything downstream reads from here:

    from xwalkify.core.data.channels import CHANNEL_VERSIONS
    from xwalkify.core.data.layout import LIBRARY_DIR
"""
