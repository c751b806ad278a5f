'''
capreg version information.
'''
# This module is imported during capreg.__init__. It must not import
# other capreg modules.

##############################################################################
# The following are touched during the release process by bumpversion.
# Do not modify these directly.
version = (0, 1, 0)
verstring = '.'.join([str(x) for x in version])
commit = ''
