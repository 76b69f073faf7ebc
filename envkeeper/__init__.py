"""
Envkeeper encrypts the values in .env files so they can be committed to a git repository.

Each env file gets a public key written at the top of the file. Values are encrypted with it, and
the matching private key is kept in a '.env.keys' file next to it that should never be committed.

The rules used to name keys are:

\b
    * '.env' uses DOTENV_PUBLIC_KEY and DOTENV_PRIVATE_KEY.
    * '.env.<environment>' uses DOTENV_PUBLIC_KEY_<ENVIRONMENT> and DOTENV_PRIVATE_KEY_<ENVIRONMENT>.

Encrypt every value in an env file (creating keys on first use):

\b
    $ echo "HELLO=world" > .env
    $ envkeeper encrypt

Encrypt only some values:

\b
    $ envkeeper encrypt -f .env.production -k 'API_*' -ek API_URL

Decrypt an env file in place, or print it:

\b
    $ envkeeper decrypt
    $ envkeeper decrypt --stdout

A private key set in the environment takes precedence over '.env.keys':

\b
    $ DOTENV_PRIVATE_KEY_PRODUCTION="..." envkeeper decrypt -f .env.production
"""

__version__ = '1.0.0'
