from devops_demo.server import main


if __name__ == "__main__":
    main()
