from syncshell.cli import main

main()
