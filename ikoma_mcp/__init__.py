"""IKOMA MCP.

This package contains a policy-gated command-execution platform: a single trusted
process that exposes a fixed whitelist of host-administration capabilities to
remote callers that hold no direct shell or filesystem access.

High-level architecture
-----------------------

Every request, whatever transport it arrives on, follows the same path:

1. The transport extracts a claimed role and a capability name.
2. ``Dispatcher`` resolves the capability through the ``CapabilityRegistry``.
3. ``RoleAuthorizer`` checks the caller role against the required role.
4. Arguments are validated against the capability input model.
5. The capability executes under the ``AuditLogger`` wrapper.

Core subpackages
----------------

- ``ikoma_mcp.gateway``:

  - Capability registry, role authorizer and dispatcher.
  - Path confinement (``PathGuard``) and secret redaction.
  - The append-only audit trail.
  - The four-stage release pipeline (source, stack, migrations, deploy).
  - Driver bindings for git, docker compose, the Supabase CLI and PostgreSQL.

- ``ikoma_mcp.server``: the HTTP/REST transport (FastAPI).
- ``ikoma_mcp.mcp_server``: the line-oriented RPC transport (MCP over stdio).
"""

__version__ = "2.0.0"
