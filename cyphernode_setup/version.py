"""Cyphernode Setup Meta information.
   Cyphernode Setup provisions the encrypted configuration vault
   and the API keys of a cyphernode installation.
"""
__title__ = 'cyphernode_setup'
__description__ = (
   'Cyphernode Setup provisions the encrypted configuration vault '
   'and the API keys of a cyphernode installation.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Cyphernode contributors'
__author__ = 'Cyphernode contributors'
__author_email__ = 'dev@cyphernode.io'
__license__ = 'MIT'
__url__ = 'https://github.com/SatoshiPortal/cyphernode'
