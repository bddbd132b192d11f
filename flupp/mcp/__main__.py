from flupp.mcp.server import main

main()
