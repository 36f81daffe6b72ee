"""RentEase Session Meta information.
   RentEase Session keeps the logged-in user's session encrypted at rest.
"""
__title__ = 'rentease_session'
__description__ = (
   'RentEase Session keeps the logged-in user session encrypted '
   'at rest and answers page-guard questions about it.'
)
__version__ = '0.3.0'
__license__ = 'Apache-2.0'
