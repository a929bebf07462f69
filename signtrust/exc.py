'''
Exceptions used by signtrust, all inheriting from SigErr
'''

class SigErr(Exception):

    def __init__(self, *args, **info):
        self.errinfo = info
        self.errname = self.__class__.__name__
        Exception.__init__(self, self._getExcMsg())

    def _getExcMsg(self):
        props = sorted(self.errinfo.items())
        displ = ' '.join(['%s=%r' % (p, v) for (p, v) in props])
        return '%s: %s' % (self.__class__.__name__, displ)

    def _setExcMesg(self):
        '''Should be called when self.errinfo is modified.'''
        self.args = (self._getExcMsg(),)

    def __setstate__(self, state):
        '''Pickle support.'''
        super(SigErr, self).__setstate__(state)
        self._setExcMesg()

    def items(self):
        return {k: v for k, v in self.errinfo.items()}

    def get(self, name, defv=None):
        '''
        Return a value from the errinfo dict.

        Example:

            try:
                foothing()
            except SigErr as e:
                blah = e.get('blah')

        '''
        return self.errinfo.get(name, defv)

    def set(self, name, valu):
        '''
        Set a value in the errinfo dict.
        '''
        self.errinfo[name] = valu
        self._setExcMesg()

    def setdefault(self, name, valu):
        '''
        Set a value in errinfo dict if it is not already set.
        '''
        if name in self.errinfo:
            return
        self.errinfo[name] = valu
        self._setExcMesg()

class BadArg(SigErr):
    ''' Improper function arguments '''
    pass

class BadConfValu(SigErr):
    '''
    The configuration value provided is not valid.

    This should contain the config name, valu and mesg.
    '''
    pass

class SchemaViolation(SigErr): pass

class NoSuchFile(SigErr):
    '''
    A file was expected at a path but it does not exist.
    '''
    pass

class BadFormat(SigErr):
    '''
    A file exists but its contents could not be parsed.
    '''
    pass

class BadCertBytes(BadFormat): pass
class BadKeyBytes(BadFormat): pass

class NotPrivateKey(SigErr):
    '''
    A key parsed correctly but does not contain private key material.
    '''
    pass

class StoreCorruption(SigErr):
    '''
    An entry in the trust directory could not be read or parsed.
    '''
    pass

class CryptoMismatch(SigErr):
    '''
    The issuer private key does not correspond to the issuer certificate.
    '''
    pass
