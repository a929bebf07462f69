import os
import logging
import collections.abc as c_abc

import yaml
import fastjsonschema

import signtrust.exc as s_exc
import signtrust.common as s_common
import signtrust.lib.const as s_const

from fastjsonschema.exceptions import JsonSchemaValueException

logger = logging.getLogger(__name__)

# Cache of validator functions
_JsValidators = {}  # type: ignore

confdefs = {
    'trust:dir': {
        'description': 'Directory holding the trusted certificates.',
        'type': 'string',
    },
    'home': {
        'description': 'Directory holding the default signing certificate and private key.',
        'type': 'string',
    },
    'key:bits': {
        'description': 'RSA key size used when building a new identity.',
        'type': 'integer',
        'minimum': 2048,
        'maximum': 16384,
        'default': s_const.KEY_BITS,
    },
    'cert:days': {
        'description': 'Number of days a built or signed certificate is valid for.',
        'type': 'integer',
        'minimum': 1,
        'maximum': 36500,
        'default': s_const.CERT_DAYS,
    },
    'digest': {
        'description': 'Hash algorithm used for certificate signatures.',
        'type': 'string',
        'enum': ['sha256', 'sha384', 'sha512'],
        'default': s_const.DIGEST,
    },
}

def getJsSchema(confdefs):
    '''
    Generate a JSON Schema for a set of configuration definitions.

    Args:
        confdefs (dict): A JSON Schema dictionary of properties for the object.

    Returns:
        dict: A complete JSON schema which does not allow additional properties.
    '''
    props = {}
    schema = {
        '$schema': 'http://json-schema.org/draft-07/schema#',
        'additionalProperties': False,
        'properties': props,
        'type': 'object'
    }
    props.update(confdefs)
    return schema

def getJsValidator(schema, use_default=True):
    '''
    Get a fastjsonschema callable.

    Args:
        schema (dict): A JSON Schema object.
        use_default (bool): Whether to insert "default" key arguments into the validated data structure.

    Returns:
        callable: A callable function that can be used to validate data against the json schema.
    '''
    if schema.get('$schema') is None:
        schema['$schema'] = 'http://json-schema.org/draft-07/schema#'

    key = (repr(schema), use_default)
    func = _JsValidators.get(key)
    if func:
        return func

    func = fastjsonschema.compile(schema, use_default=use_default)

    def wrap(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except JsonSchemaValueException as e:
            raise s_exc.SchemaViolation(mesg=e.message, name=e.name) from e

    _JsValidators[key] = wrap
    return wrap

def _yamlErrText(e):
    # yaml errors span several lines
    return ' '.join(str(e).split())

def make_envar_name(key, prefix=None):
    '''
    Convert a colon delimited string into an uppercase, underscore delimited string.

    Args:
        key (str): Config key to convert.
        prefix (str): Optional string prefix to prepend the the config key.

    Returns:
        str: The string to lookup against a envar.
    '''
    nk = f'{key.replace(":", "_")}'
    if prefix:
        nk = f'{prefix}_{nk}'
    return nk.upper()

class Config(c_abc.MutableMapping):
    '''
    signtrust configuration helper based on JSON Schema.

    Args:
        schema (dict): The JSON Schema (draft v7) which to validate
                       configuration data against.
        conf (dict): Optional, a set of configuration data to preload.
        envar_prefix (str): Optional prefix used when collecting
                            configuration data from environment variables.

    Notes:
        Default values are not loaded into the configuration data until
        the ``reqConfValid()`` method is called.
    '''
    def __init__(self, schema=None, conf=None, envar_prefix='sigtrust'):

        if schema is None:
            schema = getJsSchema(confdefs)

        if conf is None:
            conf = {}

        self.json_schema = schema
        self.envar_prefix = envar_prefix

        self.conf = {}
        self.validator = getJsValidator(self.json_schema)

        self._prop_validators = {}
        for k, v in self.json_schema.get('properties').items():
            prop_schema = {
                '$schema': 'http://json-schema.org/draft-07/schema#',
            }
            prop_schema.update(v)
            self._prop_validators[k] = getJsValidator(prop_schema)

        # Copy the data in so that it is validated.
        for k, v in conf.items():
            self[k] = v

    def setConfFromFile(self, path):
        '''
        Set the opts for a conf object from YAML file path.

        Values already present are not overwritten.
        '''
        try:
            item = s_common.yamlload(path)
        except yaml.YAMLError as e:
            raise s_exc.BadConfValu(mesg=f'Config file {path} is not valid YAML: {_yamlErrText(e)}', path=path) from None

        if item is None:
            return

        if not isinstance(item, dict):
            raise s_exc.BadConfValu(mesg=f'Config file {path} must contain a mapping.', path=path)

        for name, valu in item.items():
            self.setdefault(name, valu)

    def setConfFromEnvs(self):
        '''
        Set configuration options from environment variables.

        Notes:
            The config name ``trust:dir`` is resolved as the envar ``SIGTRUST_TRUST_DIR``.
            Values are parsed with ``yaml.safe_load()``.  Values which are already
            set are not replaced.

        Returns:
            dict: Returns a dictionary of values which were set from enviroment variables.
        '''
        updates = {}
        for name, envar in self.getEnvarMapping().items():

            envv = os.getenv(envar)
            if envv is None:
                continue

            try:
                envv = yaml.safe_load(envv)
            except yaml.YAMLError as e:
                raise s_exc.BadConfValu(mesg=f'Envar {envar} is not valid YAML: {_yamlErrText(e)}', name=name, envar=envar) from None

            curv = self.get(name, s_common.novalu)
            if curv is not s_common.novalu:
                if curv != envv:
                    logger.warning(f'Config from envar [{envar}] skipped due to already being set!')
                continue

            self.setdefault(name, envv)
            logger.debug(f'Set config valu from envar: [{envar}]')
            updates[name] = envv

        return updates

    def getEnvarMapping(self):
        '''
        Get a mapping of config values to envars.
        '''
        ret = {}
        for name in self.json_schema.get('properties', {}).keys():
            ret[name] = make_envar_name(name, prefix=self.envar_prefix)
        return ret

    def reqConfValid(self):
        '''
        Validate that the loaded configuration data is valid according to the schema.

        Notes:
            The validation sets any default values which are not currently
            set for configuration options.

        Returns:
            None: This returns nothing.
        '''
        try:
            self.validator(self.conf)
        except s_exc.SchemaViolation as e:
            logger.debug('Configuration is invalid: %s', e)
            raise s_exc.BadConfValu(mesg=f'Invalid configuration found: [{str(e)}]') from None

    def reqKeyValid(self, key, value):
        '''
        Test if a key is valid for the provided schema it is associated with.

        Args:
            key (str): Key to check.
            value: Value to check.

        Raises:
            BadArg: If the key has no associated schema.
            BadConfValu: If the data is not schema valid.

        Returns:
            None when valid.
        '''
        validator = self._prop_validators.get(key)
        if validator is None:
            raise s_exc.BadArg(mesg=f'Key {key} is not a valid config', key=key)
        try:
            validator(value)
        except s_exc.SchemaViolation as e:
            raise s_exc.BadConfValu(mesg=f'Invalid config for {key}, {e.get("mesg")}', name=key, value=value) from None

    # ABC methods
    def __len__(self):
        return len(self.conf)

    def __iter__(self):
        return self.conf.__iter__()

    def __delitem__(self, key):
        return self.conf.__delitem__(key)

    def __setitem__(self, key, value):
        self.reqKeyValid(key, value)
        return self.conf.__setitem__(key, value)

    def __getitem__(self, item):
        return self.conf.__getitem__(item)
