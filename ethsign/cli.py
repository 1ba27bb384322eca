#!/usr/bin/env python
#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# To use this, install with:
#
#   pip install --editable '.[cli]'
#
# That will create the command "ethsign" in your path.
#
#
import click, sys, logging
from functools import wraps
from getpass import getpass

from ethsign.constants import DEFAULT_PIPE, DEFAULT_VAULT_FILE
from ethsign.exceptions import VaultError
from ethsign.utils import B2A, hash_message, to_checksum_address
from ethsign.validate import validate_address
from ethsign import __version__

# dict of options that apply to all commands
global global_opts
global_opts = dict()

# Cleanup display (supress traceback) for user-feedback exceptions
_sys_excepthook = sys.excepthook
def my_hook(ty, val, tb):
    if issubclass(ty, VaultError):
        print("FATAL: %s" % val, file=sys.stderr)
    else:
        return _sys_excepthook(ty, val, tb)
sys.excepthook=my_hook

def fail(msg):
    # show message and stop
    click.echo(f"FAILURE: {msg}", err=True)
    sys.exit(1)

def get_vault():
    # Pick the vault to work with: a server if we were told of one, else the local file.
    from ethsign.transport import VaultUnixTransport, VaultLocalTransport

    pipe = global_opts.get('socket')
    if pipe:
        try:
            return VaultUnixTransport(pipe)
        except OSError as exc:
            fail(f"Cannot reach vault server at {pipe}: {exc}")

    from ethsign.accounts import AccountStore
    from ethsign.backend import Backend
    from ethsign.storage import FileStorage

    store = AccountStore(FileStorage(global_opts.get('vault') or DEFAULT_VAULT_FILE))
    return VaultLocalTransport(Backend(store))

def dump_dict(d):
    for k,v in d.items():
        if isinstance(v, (bytes, bytearray)):
            v = B2A(v)

        click.echo('%s: %s' % (k, v))

def display_errors(f):
    # clean-up display of errors from vault
    @wraps(f)
    def wrapper(*args, **kws):
        try:
            return f(*args, **kws)
        except VaultError as exc:
            fail(str(exc))
    return wrapper

# Accept any prefix of a command name.
#
# from <https://click.palletsprojects.com/en/8.0.x/advanced/?#command-aliases>
class AliasedGroup(click.Group):
    def get_command(self, ctx, cmd_name):
        rv = click.Group.get_command(self, ctx, cmd_name)
        if rv is not None:
            return rv
        matches = [x for x in self.list_commands(ctx)
                   if x.startswith(cmd_name)]
        if not matches:
            return None
        elif len(matches) == 1:
            return click.Group.get_command(self, ctx, matches[0])
        ctx.fail(f"Abiguous command. Pick one of: {' | '.join(sorted(matches))}")

    def resolve_command(self, ctx, args):
        # always return the full command name
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name, cmd, args


#
# Options we want for all commands
#
@click.group(cls=AliasedGroup)
@click.option('--vault', '-f', default=DEFAULT_VAULT_FILE, envvar='ETHSIGN_VAULT',
                    metavar="FILE", show_default=True,
                    help="Local vault file (when not using a server)")
@click.option('--socket', '-s', default=None, envvar='ETHSIGN_SOCKET', metavar="PATH",
                    help=f"Talk to vault server on this Unix socket, ie: {DEFAULT_PIPE}")
@click.option('--verbose', '-v', is_flag=True,
                    help="Show logging and traffic with server.")
@click.option('--pdb', is_flag=True,
                    help="Prepare patient for surgery to remove bugs.")
@click.version_option(version=__version__)
def main(**kws):
    '''
    Keep Ethereum private keys and sign digests with them.

    You can use "exp" for "export": any distinct prefix for all commands.
    '''
    # implement PDB option here
    if kws.pop('pdb', False):
        import pdb
        def doit(ex_cls, ex, tb):
            pdb.pm()
        sys.excepthook = doit

    if kws.get('verbose'):
        import ethsign.transport as tt
        tt.VERBOSE = True
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    # global options, mostly not considered here
    global global_opts
    global_opts.update(kws)


@main.command('list')
@display_errors
def list_accounts():
    "List addresses of all accounts in vault."
    vault = get_vault()
    resp = vault.request('list', 'accounts')

    keys = resp.get('keys', []) if resp else []
    for addr in keys:
        click.echo(addr)

    if not keys:
        click.echo("(none found)", err=True)

@main.command('new')
@click.argument('privkey', type=str, metavar="[HEX]", required=False)
@click.option('--import', '-i', 'do_import', is_flag=True,
                help="Prompt for the private key to import (keeps it out of shell history)")
@display_errors
def new_account(privkey, do_import):
    "Make a new account, or import an existing private key (64 hex digits)."
    if do_import and not privkey:
        privkey = getpass("Enter private key (hex): ")
        if not privkey:
            fail("Need a key to import.")

    vault = get_vault()
    if privkey:
        resp = vault.request('update', 'accounts', privateKey=privkey)
    else:
        resp = vault.request('update', 'accounts')

    click.echo(resp['address'])

@main.command('show')
@click.argument('address', type=str, metavar="0xADDR")
@click.option('--checksum', '-c', is_flag=True, help="Show with EIP-55 mixed case")
@display_errors
def show_account(address, checksum):
    "Show the account, if it is in the vault."
    vault = get_vault()
    resp = vault.request('read', 'accounts/' + address)
    if not resp:
        fail("Account does not exist")

    addr = resp['address']
    click.echo(to_checksum_address(addr) if checksum else addr)

@main.command('export')
@click.argument('address', type=str, metavar="0xADDR")
@click.option('--bare', is_flag=True, help="Just the private key, nothing more")
@display_errors
def export_account(address, bare):
    "Show the private key of an account. Careful!"
    vault = get_vault()
    resp = vault.request('read', 'export/accounts/' + address)

    if bare:
        click.echo(resp['privateKey'])
    else:
        dump_dict(resp)

@main.command('delete')
@click.argument('address', type=str, metavar="0xADDR")
@click.option('--yes', '-y', is_flag=True, help="Do not ask for confirmation")
@display_errors
def delete_account(address, yes):
    "Forget an account forever. No error if already gone."
    if not yes:
        click.confirm(f"Really delete {address} and its private key?", abort=True)

    vault = get_vault()
    vault.request('delete', 'accounts/' + address)

@main.command('sign')
@click.argument('address', type=str, metavar="0xADDR")
@click.argument('digest', type=str, metavar="0xDIGEST")
@display_errors
def sign_digest(address, digest):
    "Sign a 32-byte digest (0x hex). Shows 65-byte signature: r + s + v"
    vault = get_vault()
    resp = vault.request('update', f'accounts/{address}/sign_digest', hash=digest)

    click.echo(resp['signature'])

@main.command('msg')
@click.argument('address', type=str, metavar="0xADDR")
@click.argument('message')
@click.option('--verbose', '-v', is_flag=True, help='Include message and address too')
@display_errors
def sign_message(address, message, verbose=False):
    "Sign a short text message (EIP-191, like personal_sign)"
    md = hash_message(message)

    vault = get_vault()
    resp = vault.request('update', f'accounts/{address}/sign_digest', hash='0x' + B2A(md))
    sig = resp['signature']

    if verbose:
        click.echo('%s\n%s\n%s' % (message, to_checksum_address(validate_address(address)), sig))
    else:
        click.echo(sig)

@main.command('qr')
@click.argument('address', type=str, metavar="0xADDR")
@click.option('--outfile', '-o', metavar="filename.png",
                        help="Save an SVG or PNG (depends on extension)", default=None,
                        type=click.File('wb'))
@click.option('--error-mode', '-e', default='L', metavar="L|M|H",
            help="Forward error correction level (L = low, H=High=bigger)")
@display_errors
def get_deposit_qr(address, outfile, error_mode):
    "Show address of an account as a QR"
    import pyqrcode

    vault = get_vault()
    resp = vault.request('read', 'accounts/' + address)
    if not resp:
        fail("Account does not exist")

    addr = to_checksum_address(resp['address'])
    q = pyqrcode.create(f'ethereum:{addr}', error=error_mode)

    if not outfile:
        click.echo(q.terminal(quiet_zone=2))
        click.echo((' '*4) + addr)
        click.echo()
    else:
        if outfile.name.lower().endswith('.svg'):
            q.svg(outfile, scale=1)
        else:
            q.png(outfile)

        click.echo(f"Wrote {outfile.tell():,} bytes to: {outfile.name}", err=1)

@main.command('serve')
@click.option('--pipe', '-p', type=str, default=DEFAULT_PIPE, help='Unix socket for comms',
                    metavar="PATH", show_default=True)
@click.option('--memory', '-m', is_flag=True, help="Keep nothing: accounts vanish at exit")
@display_errors
def serve_vault(pipe, memory):
    "Run a vault server on a Unix socket, using the vault file."
    from ethsign.accounts import AccountStore
    from ethsign.backend import Backend
    from ethsign.storage import FileStorage, InMemoryStorage
    from ethsign.transport import serve

    if memory:
        storage = InMemoryStorage()
    else:
        storage = FileStorage(global_opts.get('vault') or DEFAULT_VAULT_FILE)

    click.echo(f"Serving {storage!r} on: {pipe}", err=True)
    try:
        serve(Backend(AccountStore(storage)), pipe)
    except KeyboardInterrupt:
        click.echo("Stopped.", err=True)

# EOF
