from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

INSTRUCTIONS = (
    "Read-only access to incident tickets. Search text supports AND / OR "
    "(OR binds loosest, no parentheses). Prefix a term with # to also match "
    "ticket numbers. Results are newest first."
)

mcp = FastMCP(
    "IncidentDesk",
    instructions=INSTRUCTIONS,
    stateless_http=True,
    json_response=True,
    streamable_http_path="/",
    transport_security=TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=["localhost", "localhost:*", "127.0.0.1:*", "[::1]:*"],
    ),
)
