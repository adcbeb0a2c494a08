"""Navigator BYOK Meta information.
   Navigator BYOK stores user-provided API keys in a passphrase-encrypted vault.
"""
__title__ = 'navigator_byok'
__description__ = (
   'Navigator BYOK stores "Bring Your Own Key" credentials '
   'into a passphrase-encrypted local vault.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-byok'
