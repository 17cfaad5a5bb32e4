from hello_mcp_server.mcp_server import main

if __name__ == "__main__":
    main()
