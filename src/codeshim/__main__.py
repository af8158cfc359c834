from codeshim.cli import main

main()
