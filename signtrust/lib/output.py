'''
Hookable output for the command line tools.
'''
import sys

class OutPut:

    def printf(self, mesg):
        return self._rawOutPut(mesg + '\n')

    def _rawOutPut(self, mesg):
        sys.stdout.write(mesg)

class OutPutStr(OutPut):
    '''
    An OutPut which collects the lines it is given.
    '''
    def __init__(self):
        self.mesgs = []

    def _rawOutPut(self, mesg):
        self.mesgs.append(mesg)

    def __str__(self):
        return ''.join(self.mesgs)

stdout = OutPut()
