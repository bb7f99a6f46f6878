from forksync.cli.app import main

main()
