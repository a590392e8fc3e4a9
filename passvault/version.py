"""Passvault Meta information.
   Passvault keeps password-manager items encrypted with keys derived
   from the user's master password.
"""
__title__ = 'passvault'
__description__ = (
   'Passvault keeps password-manager items encrypted with keys '
   'derived from the user master password.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
