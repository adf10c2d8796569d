"""Built-in CLI sub-commands for oasir.

* :mod:`~oasir.commands.inspect` -- the ``inspect`` group (routes, models,
  metadata).
* :mod:`~oasir.commands.validate` -- the ``validate`` command.
* :mod:`~oasir.commands.documents` -- shared document loading and the
  ``--register`` option.
"""
